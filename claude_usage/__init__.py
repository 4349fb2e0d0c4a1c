"""Claude usage monitor: token and quota reporting from local conversation logs."""

__version__ = "1.2.0"
