"""Shared CLI building blocks: global context, reusable options, error output."""
