"""
AniTick - Airing anime tracker for AniList

Polls AniList for the airing state of a watchlist within the API rate limit
and sends one notification per episode when it is about to air or has aired.
"""

__version__ = "1.0.0"
__author__ = "AniTick Team"

__all__ = ["__version__"]
