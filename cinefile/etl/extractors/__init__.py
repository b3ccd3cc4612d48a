"""Extractors: ranked-list CSV parser and TMDB metadata client."""
