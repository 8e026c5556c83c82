"""HTTP API for batch ingestion and the timeline dashboard."""

from competitor_timeline.api.app import create_app

__all__ = ["create_app"]
