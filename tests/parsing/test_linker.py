"""Tests for the linker block state machine."""

from __future__ import annotations

from buildsift.parsing.diagnostics import LinkerBlock, LinkerBlockState, feed_linker_line
from buildsift.parsing.models import (
    DuplicateSymbol,
    LinkerError,
    LinkerErrorKind,
    LinkerMessage,
    UndefinedSymbol,
)


def feed_all(lines: list[str]) -> tuple[list[LinkerError], LinkerBlock]:
    block = LinkerBlock()
    emitted: list[LinkerError] = []
    for line in lines:
        _, records = feed_linker_line(line, block)
        emitted.extend(records)
    return emitted, block


class TestUndefinedSymbols:
    """`Undefined symbols for architecture X:` blocks."""

    def test_single_symbol(self) -> None:
        # Given
        lines = [
            "Undefined symbols for architecture arm64:",
            '  "_OBJC_CLASS_$_MissingClass", referenced from:',
            "      objc-class-ref in ViewController.o",
            "ld: symbol(s) not found for architecture arm64",
        ]

        # When
        emitted, block = feed_all(lines)

        # Then
        assert emitted == [
            UndefinedSymbol(
                symbol="_OBJC_CLASS_$_MissingClass",
                architecture="arm64",
                referenced_from="ViewController.o",
            )
        ]
        assert not block.is_open

    def test_multiple_symbols_in_one_block(self) -> None:
        lines = [
            "Undefined symbols for architecture x86_64:",
            '  "_foo", referenced from:',
            "      _main in main.o",
            '  "_bar", referenced from:',
            "      _helper in util.o",
            "      _other in more.o",
            "ld: symbol(s) not found for architecture x86_64",
        ]

        emitted, _ = feed_all(lines)

        assert [(e.symbol, e.referenced_from) for e in emitted] == [  # type: ignore[union-attr]
            ("_foo", "main.o"),
            ("_bar", "util.o"),
        ]
        assert all(e.architecture == "x86_64" for e in emitted)  # type: ignore[union-attr]

    def test_truncated_block_emits_nothing(self) -> None:
        """A block cut off before the reference site yields no record."""
        lines = [
            "Undefined symbols for architecture arm64:",
            '  "_foo", referenced from:',
        ]

        emitted, block = feed_all(lines)
        emitted.extend(block.close())

        assert emitted == []

    def test_unrelated_line_closes_block(self) -> None:
        _, block = feed_all(["Undefined symbols for architecture arm64:"])
        assert block.state is LinkerBlockState.AWAITING_SYMBOL

        consumed, records = feed_linker_line("Compiling main.swift", block)

        assert not consumed
        assert records == []
        assert not block.is_open


class TestDuplicateSymbols:
    """`duplicate symbol '_x' in:` blocks."""

    def test_complete_block(self) -> None:
        lines = [
            "duplicate symbol '_sharedHelper' in:",
            "    /tmp/Build/A.o",
            "    /tmp/Build/B.o",
            "ld: 1 duplicate symbol for architecture arm64",
        ]

        emitted, block = feed_all(lines)

        assert emitted == [
            DuplicateSymbol(
                symbol="_sharedHelper",
                architecture="arm64",
                conflicting_files=("/tmp/Build/A.o", "/tmp/Build/B.o"),
            )
        ]
        assert not block.is_open

    def test_truncated_block_with_two_files_emits_on_close(self) -> None:
        """Truncation after two files still yields a record, with unknown architecture."""
        emitted, block = feed_all(
            ["duplicate symbol '_x' in:", "    A.o", "    libB.a"]
        )
        emitted.extend(block.close())

        assert len(emitted) == 1
        record = emitted[0]
        assert isinstance(record, DuplicateSymbol)
        assert record.architecture == ""
        assert record.conflicting_files == ("A.o", "libB.a")

    def test_truncated_block_with_one_file_emits_nothing(self) -> None:
        emitted, block = feed_all(['duplicate symbol "_x" in:', "    A.o"])
        emitted.extend(block.close())
        assert emitted == []

    def test_blank_line_closes_block(self) -> None:
        emitted, block = feed_all(["duplicate symbol '_x' in:", "    A.o", "    B.o", ""])
        assert not block.is_open
        assert len(emitted) == 1


class TestSingleLineMessages:
    def test_library_not_found(self) -> None:
        emitted, _ = feed_all(["ld: library not found for -lSQLiteCustom"])
        assert emitted == [LinkerMessage(message="library not found for -lSQLiteCustom")]
        assert emitted[0].kind is LinkerErrorKind.MESSAGE

    def test_framework_not_found(self) -> None:
        emitted, _ = feed_all(["ld: framework not found Charts"])
        assert emitted == [LinkerMessage(message="framework not found Charts")]

    def test_architecture_mismatch_keeps_full_line(self) -> None:
        line = "ld: building for iOS Simulator, but linking in object file built for iOS"
        emitted, _ = feed_all([line])
        assert emitted == [LinkerMessage(message=line)]

    def test_summary_line_is_consumed_without_record(self) -> None:
        block = LinkerBlock()
        consumed, records = feed_linker_line(
            "ld: symbol(s) not found for architecture arm64", block
        )
        assert consumed
        assert records == []

    def test_non_linker_line_not_consumed(self) -> None:
        consumed, records = feed_linker_line("main.swift:1:1: error: boom", LinkerBlock())
        assert not consumed
        assert records == []


class TestDedupKeys:
    def test_same_symbol_same_key(self) -> None:
        a = UndefinedSymbol(symbol="_f", architecture="arm64", referenced_from="a.o")
        b = UndefinedSymbol(symbol="_f", architecture="x86_64", referenced_from="b.o")
        assert a.dedup_key == b.dedup_key

    def test_messages_keyed_by_text(self) -> None:
        assert LinkerMessage("a").dedup_key != LinkerMessage("b").dedup_key
