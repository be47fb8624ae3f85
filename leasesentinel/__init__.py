"""LeaseSentinel - deadline tracking with a daily notification sweep."""

__version__ = "0.1.0"
