"""Shared helpers: caching, file naming, responses and router decorators."""
