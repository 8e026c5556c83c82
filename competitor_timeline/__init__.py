"""Competitor Timeline - social media ingestion and synchronization pipeline."""

__version__ = "0.1.0"
