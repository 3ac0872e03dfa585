"""Scrape pipeline: extraction, discovery, persistence and browser control."""
