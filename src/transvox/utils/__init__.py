"""Utility helpers: retry with backoff and stage timing."""
