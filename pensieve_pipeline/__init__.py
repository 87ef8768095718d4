"""Post-processing pipeline for recorded meetings."""

__version__ = "0.3.0"
