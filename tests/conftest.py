"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import logging
import os
import sys
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

# Insert local src directory at the beginning of sys.path
# This ensures that the local buildsift package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of buildsift modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("buildsift"):
        del sys.modules[module_name]


@pytest.fixture(autouse=True)
def _reset_logging() -> Generator[None, None, None]:
    """Keep structlog / stdlib logging configuration from leaking between tests."""
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Strip BUILDSIFT__* and CI variables inherited from the outer environment."""
    for key in list(os.environ):
        if key.startswith("BUILDSIFT__"):
            monkeypatch.delenv(key)
    monkeypatch.delenv("GITHUB_ACTIONS", raising=False)
