"""REST facade over a JSON document store and a photo blob store."""

__version__ = "1.0.0"
