"""Search a Google Drive sheet-music library by title, key, and lyrics."""

__version__ = "0.1.0"
