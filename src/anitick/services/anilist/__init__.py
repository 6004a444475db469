"""AniList catalog client package."""

from .client import AniListClient
from .transport import AiohttpTransport

__all__ = ["AiohttpTransport", "AniListClient"]
