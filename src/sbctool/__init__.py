"""sbctool - live diagnostic dashboard for single-board computers."""

__version__ = "0.1.0"
