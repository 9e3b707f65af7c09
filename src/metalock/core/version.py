"""Version information for metalock."""

__version__ = "1.0.0"
