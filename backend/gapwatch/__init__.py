"""GapWatch: planned vs. observed transit service, bucketed by hour."""

__version__ = "0.1.0"
