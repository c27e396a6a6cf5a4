"""Per-user activity tracking with dashboard chart data."""

__version__ = "0.1.0"
