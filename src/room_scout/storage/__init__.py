"""Storage and persistence layer."""

from room_scout.storage.job_storage import JobStorage

__all__ = ["JobStorage"]
