"""Per-URL scrape jobs: submission, background processing and transport recompute.

A job moves through one of two paths and never back:

    pending -> complete   extraction produced at least one field
    pending -> failed     fetch failed, or the page yielded nothing

Submitting a URL that already has a job returns that job's status without
doing any work, so repeated or concurrent submissions share a single run.
"""
import asyncio
from urllib.parse import urlparse

from loguru import logger

from room_scout.config.settings import AddressConfig
from room_scout.enrichment import TransportEnricher, build_complete_address
from room_scout.exceptions import GetListingException, InvalidUrl, JobNotFound, SourceParsingError
from room_scout.schema import (
    ExtractedListing,
    Job,
    JobStatus,
    SubmitResult,
    TransportMetrics,
    TransportUpdate,
    TransportUpdateError,
)
from room_scout.scraper import Fetcher, ListingExtractor
from room_scout.storage import JobStorage


def validate_url(url: str | None) -> str:
    """
    Raises:
        InvalidUrl if the URL is missing, relative or not http(s)
    """
    if not url or not url.strip():
        raise InvalidUrl("URL is required")
    url = url.strip()
    try:
        parsed = urlparse(url)
        # port is parsed lazily and raises on garbage like ":abc"
        _ = parsed.port
    except ValueError as e:
        raise InvalidUrl(f"malformed URL: {url}: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise InvalidUrl(f"not an absolute http(s) URL: {url}")
    return url


class JobCoordinator:
    def __init__(
        self,
        storage: JobStorage,
        fetcher: Fetcher,
        enricher: TransportEnricher,
        extractor: ListingExtractor | None = None,
        address_config: AddressConfig | None = None,
    ) -> None:
        self._storage = storage
        self._fetcher = fetcher
        self._enricher = enricher
        self._extractor = extractor or ListingExtractor()
        self._address_config = address_config or AddressConfig()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, url: str | None) -> SubmitResult:
        """Start scraping *url* in the background unless a job for it exists.

        Must be called from inside a running event loop. The pending row is
        committed before the background task is created.
        Raises:
            InvalidUrl
            sqlite3.Error
        """
        url = validate_url(url)

        existing = self._storage.get_by_url(url)
        if existing is not None:
            return self._result_for(existing)

        if not self._storage.create_pending(url):
            # Lost a race against another submitter; report their job.
            existing = self._storage.get_by_url(url)
            if existing is None:
                raise JobNotFound(f"job for {url} vanished right after creation")
            return self._result_for(existing)

        task = asyncio.create_task(self._process(url), name=f"scrape:{url}")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return SubmitResult(status=JobStatus.pending)

    def query(self, url: str | None) -> Job | None:
        """Raises InvalidUrl; the URL is trimmed the same way submit trims it."""
        return self._storage.get_by_url(validate_url(url))

    async def join(self) -> None:
        """Wait until every background job started so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @staticmethod
    def _result_for(job: Job) -> SubmitResult:
        if job.status is JobStatus.complete:
            return SubmitResult(status=job.status, content=job.content)
        return SubmitResult(status=job.status)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Background task {task.get_name()} was cancelled; its job stays pending")
            return
        if (exc := task.exception()) is not None:
            logger.opt(exception=exc).error(f"Background task {task.get_name()} crashed")

    # ------------------------------------------------------------------
    # Background unit of work
    # ------------------------------------------------------------------

    async def _process(self, url: str) -> None:
        listing = await self._scrape(url)
        if listing is None:
            self._storage.fail(url)
            return

        self._storage.complete(url, listing)

        street_address = listing.get("adresse")
        if not street_address:
            logger.info(f"No address on {url}, skipping transport")
            return

        job = self._storage.get_by_url(url)
        if job is None:
            logger.warning(f"Job for {url} was deleted before transport could be stored")
            return
        metrics = await self._transport_for(street_address, listing.get("ort"))
        self._storage.update_transport(job.id, metrics)

    async def _scrape(self, url: str) -> ExtractedListing | None:
        try:
            html = await self._fetcher.fetch(url)
        except GetListingException as e:
            logger.error(f"Fetch failed for {url}: {e}")
            return None
        except Exception:
            logger.exception(f"Fetch crashed for {url}")
            return None

        try:
            return self._extractor.extract(html)
        except SourceParsingError as e:
            logger.warning(f"Nothing extracted from {url}: {e}")
        except Exception:
            logger.exception(f"Extraction crashed for {url}")
        return None

    async def _transport_for(self, street_address: str, locality: str | None) -> TransportMetrics:
        address = self.complete_address(street_address, locality)
        try:
            return await self._enricher.enrich(address)
        except Exception:
            logger.exception(f"Enrichment crashed for {address}")
            return TransportMetrics.empty()

    def complete_address(self, street_address: str, locality: str | None = None) -> str:
        return build_complete_address(
            street_address,
            locality,
            known_localities=self._address_config.known_localities,
            default_locality=self._address_config.default_locality,
        )

    # ------------------------------------------------------------------
    # Transport recompute
    # ------------------------------------------------------------------

    async def recompute_transport(
        self, job_id: int, address: str, locality: str | None = None
    ) -> TransportUpdate:
        """Recompute and overwrite the transport fields of one job.
        Raises:
            JobNotFound
            sqlite3.Error
        """
        if self._storage.get_by_id(job_id) is None:
            raise JobNotFound(f"job {job_id} not found")
        complete_address = self.complete_address(address, locality)
        logger.info(f"Recomputing transport for job {job_id}: {complete_address}")
        metrics = await self._enricher.enrich(complete_address)
        self._storage.update_transport(job_id, metrics)
        return TransportUpdate(
            id=job_id, address=address, complete_address=complete_address, transport=metrics
        )

    async def recompute_missing(self) -> list[TransportUpdate | TransportUpdateError]:
        """Recompute transport, one job after another, for every job missing a travel time."""
        results: list[TransportUpdate | TransportUpdateError] = []
        jobs = self._storage.list_missing_transport()
        logger.info(f"{len(jobs)} jobs are missing transport data")
        for job in jobs:
            if not job.address:
                logger.debug(f"Job {job.id} has no address, skipping")
                continue
            try:
                results.append(await self.recompute_transport(job.id, job.address, job.locality))
            except Exception as e:
                logger.opt(exception=e).error(f"Error processing job {job.id}")
                results.append(TransportUpdateError(id=job.id, error="Failed to process address"))
        return results
