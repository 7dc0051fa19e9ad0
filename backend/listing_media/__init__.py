"""Listing media service: image variants, video storage and media listings."""
