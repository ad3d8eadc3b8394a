"""ClypSync: a shared clipboard feed for every device that enters the same room PIN."""

__version__ = "0.1.0"
