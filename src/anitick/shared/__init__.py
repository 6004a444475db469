"""Shared utilities, constants, models and errors for AniTick."""
