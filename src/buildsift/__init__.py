"""buildsift - structured results from Swift/Xcode build and test output."""

__version__ = "0.1.0"
