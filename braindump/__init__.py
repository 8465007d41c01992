"""BrainDump backend: capture, categorize and sync free-text thoughts."""

__version__ = "1.0.0"
