"""flowbot: conversation orchestration backend."""

__version__ = "0.3.0"
