"""Utility modules."""

from room_scout.utils.logger import log_resources, setup_logger
from room_scout.utils.scraper import inner_text

__all__ = ["inner_text", "log_resources", "setup_logger"]
