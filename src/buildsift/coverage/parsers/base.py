"""Coverage report decoder protocol."""

from typing import Any, Protocol

from buildsift.coverage.models import CodeCoverage


class CoverageReportParser(Protocol):
    """Protocol for coverage report decoders.

    Each decoder handles one external JSON schema and converts it to the
    unified CodeCoverage model.
    """

    @property
    def format_id(self) -> str:
        """Format identifier (e.g., 'llvm-cov', 'xccov')."""
        ...

    def can_decode(self, data: Any) -> bool:
        """Check whether a loaded JSON document has this decoder's shape."""
        ...

    def decode(self, data: Any) -> CodeCoverage:
        """Decode a loaded JSON document.

        Raises:
            CoverageError: If the document does not match the schema.
        """
        ...
