"""AniTick command line interface."""
