"""launchkit — self-bootstrapping launcher for Python scripts."""

__version__ = "0.1.0"
