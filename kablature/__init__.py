"""Kablature: text notation to paginated piano tablature."""

__version__ = "0.3.0"
