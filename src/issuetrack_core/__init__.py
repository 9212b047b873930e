"""Issue tracking and client relationship core."""

__version__ = "1.0.0"
