"""Interaction and moderation integrity engine exposed to the application."""

from learnboard.interactions.api import router
from learnboard.interactions.domain.container import configure, configure_from_settings

__all__ = ["router", "configure", "configure_from_settings"]
