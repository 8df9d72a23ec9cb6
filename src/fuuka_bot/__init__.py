"""Matrix room bot that turns room messages into typed requests and replies."""

from __future__ import annotations

__version__ = "0.1.0"
