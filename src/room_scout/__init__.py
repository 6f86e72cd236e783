"""Scrape room listings, geocode them and estimate travel times to campus."""
