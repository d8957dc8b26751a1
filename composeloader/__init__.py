"""Parse, normalize and inspect Compose application models held as plain dictionaries."""

__version__ = "0.1.0"
__all__ = ["loader", "normalize", "paths", "reset"]