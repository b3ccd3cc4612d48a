"""Catalog import pipeline: CSV extraction, TMDB search, matching and orchestration."""
