"""SQLite-based storage for scrape jobs and their enrichment."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path

from loguru import logger

from room_scout.exceptions import JobNotFound
from room_scout.schema import ExtractedListing, Job, JobStatus, TransportMetrics, dump_listing
from room_scout.storage.DDL import _DDL, _LATE_COLUMNS

_COLUMNS = (
    "id, url, content, scraped_at, liked, done, status,"
    " walking_time, transit_time, cycling_time, latitude, longitude"
)


class JobStorage:
    """SQLite-backed storage for listing jobs, keyed by id and by unique URL.

    Every method is one short transaction; nothing is held open across calls.
    """

    def __init__(self, data_dir: Path, filename: str = "listings.db"):
        data_dir.mkdir(parents=True, exist_ok=True)
        self._db_path = data_dir / filename
        self._init_db()

    # ------------------------------------------------------------------
    # Infrastructure
    # ------------------------------------------------------------------

    @contextmanager
    def _connect(self):
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript(_DDL)
            # Databases created by older versions lack the later columns.
            cols = {row[1] for row in conn.execute("PRAGMA table_info(listings)")}
            for column, definition in _LATE_COLUMNS.items():
                if column not in cols:
                    conn.execute(f"ALTER TABLE listings ADD COLUMN {column} {definition}")
        logger.debug(f"Database ready at {self._db_path}")

    # ------------------------------------------------------------------
    # Job lifecycle
    # ------------------------------------------------------------------

    def create_pending(self, url: str) -> bool:
        """Insert a pending job for *url*.

        Returns False without touching anything if a job for the URL already exists.
        """
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO listings (url, content, status) VALUES (?, '{}', ?)",
                (url, JobStatus.pending),
            )
            created = cursor.rowcount > 0
        if created:
            logger.info(f"Created pending job for {url}")
        return created

    def get_by_url(self, url: str) -> Job | None:
        with self._connect() as conn:
            row = conn.execute(f"SELECT {_COLUMNS} FROM listings WHERE url = ?", (url,)).fetchone()
        return Job.model_validate(dict(row)) if row else None

    def get_by_id(self, job_id: int) -> Job | None:
        with self._connect() as conn:
            row = conn.execute(f"SELECT {_COLUMNS} FROM listings WHERE id = ?", (job_id,)).fetchone()
        return Job.model_validate(dict(row)) if row else None

    def complete(self, url: str, listing: ExtractedListing) -> bool:
        """Store the extracted listing and move a pending job to complete.

        Only pending jobs transition; returns False if the job was missing or already terminal.
        """
        if not listing:
            raise ValueError("a complete job needs a non-empty listing")
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE listings SET content = ?, status = ? WHERE url = ? AND status = ?",
                (dump_listing(listing), JobStatus.complete, url, JobStatus.pending),
            )
            changed = cursor.rowcount > 0
        if changed:
            logger.info(f"Job complete: {url}")
        else:
            logger.warning(f"Job for {url} was not pending, listing not stored")
        return changed

    def fail(self, url: str) -> bool:
        """Move a pending job to failed. Returns False if it was missing or already terminal."""
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE listings SET status = ? WHERE url = ? AND status = ?",
                (JobStatus.failed, url, JobStatus.pending),
            )
            changed = cursor.rowcount > 0
        if changed:
            logger.info(f"Job failed: {url}")
        return changed

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def update_transport(self, job_id: int, metrics: TransportMetrics) -> None:
        """Overwrite travel times and coordinates of a job.

        Raises JobNotFound if no job has this id.
        """
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE listings"
                " SET walking_time = ?, transit_time = ?, cycling_time = ?, latitude = ?, longitude = ?"
                " WHERE id = ?",
                (*metrics.row, job_id),
            )
            if cursor.rowcount == 0:
                raise JobNotFound(f"job {job_id} not found")

    def list_missing_transport(self) -> list[Job]:
        """Return jobs where at least one travel time is still NULL."""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM listings"
                " WHERE walking_time IS NULL OR transit_time IS NULL OR cycling_time IS NULL"
                " ORDER BY id"
            ).fetchall()
        return [Job.model_validate(dict(r)) for r in rows]

    # ------------------------------------------------------------------
    # Listing and flags
    # ------------------------------------------------------------------

    def list_jobs(self) -> list[Job]:
        """Return all jobs, liked first, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM listings ORDER BY liked DESC, scraped_at DESC, id DESC"
            ).fetchall()
        return [Job.model_validate(dict(r)) for r in rows]

    def _set_flag(self, job_id: int, column: str, value: bool) -> None:
        with self._connect() as conn:
            cursor = conn.execute(f"UPDATE listings SET {column} = ? WHERE id = ?", (int(value), job_id))
            if cursor.rowcount == 0:
                raise JobNotFound(f"job {job_id} not found")

    def set_liked(self, job_id: int, liked: bool) -> None:
        """Raises JobNotFound if no job has this id."""
        self._set_flag(job_id, "liked", liked)

    def set_done(self, job_id: int, done: bool) -> None:
        """Raises JobNotFound if no job has this id."""
        self._set_flag(job_id, "done", done)

    def delete(self, job_id: int) -> None:
        """Remove a job entirely. Raises JobNotFound if no job has this id."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM listings WHERE id = ?", (job_id,))
            if cursor.rowcount == 0:
                raise JobNotFound(f"job {job_id} not found")
        logger.info(f"Deleted job {job_id}")
