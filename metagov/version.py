"""Version information for MetaGov."""

__version__ = "0.3.0"
