"""palimp - land short-lived sketch branches onto main without merge commits."""

__version__ = "0.1.0"
