"""Keep files and folders in a sync directory behind symbolic links."""

__version__ = "0.1.0"
__all__ = ["cli", "config", "link", "util"]