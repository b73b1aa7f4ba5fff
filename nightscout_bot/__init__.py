"""
Nightscout Lookup - resolves and summarizes Nightscout glucose data for chat users.

This package decides which Nightscout site a chat request refers to,
enforces per-guild privacy, fetches the latest reading and builds a
presentation model for the chat transport to render.
"""

__version__ = "1.0.0"
__author__ = "Nightscout Lookup Contributors"

from .config import Settings, get_settings
from .exceptions import ClassifiedError, ErrorKind
from .models import EndpointDescriptor, PresentationModel, Reading, RequestContext
from .pipeline import GlucosePipeline

__all__ = [
    "Settings",
    "get_settings",
    "ClassifiedError",
    "ErrorKind",
    "EndpointDescriptor",
    "PresentationModel",
    "Reading",
    "RequestContext",
    "GlucosePipeline",
]
