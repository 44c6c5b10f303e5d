"""linearfeed: keeps linear channels scheduled from MRSS feeds."""

__version__ = "0.1.0"
