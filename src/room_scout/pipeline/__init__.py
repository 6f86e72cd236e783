"""Scrape job coordination."""

from room_scout.pipeline.coordinator import JobCoordinator, validate_url

__all__ = ["JobCoordinator", "validate_url"]
