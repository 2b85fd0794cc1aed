"""QVET article change-detection-and-application tool."""

__version__ = "0.1.0"
