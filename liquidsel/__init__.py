"""Row selections, projection masks, batch-granular column caching and cached readers."""

__version__ = "0.1.0"