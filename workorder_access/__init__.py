"""Authorization and row-level access control for the work-order service."""

__version__ = "0.1.0"
