"""designflow: screenshot-to-canvas extraction and AI-assisted design optimization API."""

__version__ = "0.3.0"
