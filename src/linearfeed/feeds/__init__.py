"""MRSS feed sources."""

from .mrss import MrssFeedSource, parse_feed

__all__ = ["MrssFeedSource", "parse_feed"]
