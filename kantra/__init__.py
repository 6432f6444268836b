"""Container command construction and analysis profile handling."""

__version__ = "0.1.0"
__all__ = ["container", "profile"]