"""Viewer-facing HTTP and WebSocket layer."""

from __future__ import annotations

from dishwatch.web.app import create_app
from dishwatch.web.viewer import StarletteTransport, ViewerSession, ViewerTransport

__all__ = ["StarletteTransport", "ViewerSession", "ViewerTransport", "create_app"]
