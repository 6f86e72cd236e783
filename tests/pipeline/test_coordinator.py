import asyncio
import sqlite3

import pytest
from conftest import DESTINATION, FakeFetcher, FakeMaps

from room_scout.enrichment import TransportEnricher
from room_scout.exceptions import InvalidUrl, JobNotFound
from room_scout.pipeline import JobCoordinator, validate_url
from room_scout.schema import JobStatus, TransportUpdate, TransportUpdateError, TravelMode

ROOM = "https://www.wgzimmer.ch/room/1"
GONE = "https://www.wgzimmer.ch/room/gone"
DOWN = "https://www.wgzimmer.ch/room/down"


# ── URL validation ─────────────────────────────────────────────────────────────

@pytest.mark.parametrize("url", [
    None,
    "",
    "   ",
    "wgzimmer.ch/room/1",
    "ftp://wgzimmer.ch/x",
    "https://",
    "http://[::1/room",
    "http://example.com:abc/room",
])
def test_invalid_urls(url):
    with pytest.raises(InvalidUrl):
        validate_url(url)


def test_valid_url_is_trimmed():
    assert validate_url(f"  {ROOM} ") == ROOM


async def test_invalid_url_creates_nothing(coordinator, storage):
    with pytest.raises(InvalidUrl):
        coordinator.submit("not a url")
    assert storage.list_jobs() == []


# ── Submission ─────────────────────────────────────────────────────────────────

async def test_submit_returns_pending_and_row_is_visible(coordinator):
    result = coordinator.submit(ROOM)
    assert result.status is JobStatus.pending
    assert result.body == {"status": "pending"}

    job = coordinator.query(ROOM)
    assert job is not None
    assert job.status is JobStatus.pending
    await coordinator.join()


async def test_submit_twice_runs_once(coordinator, storage, fetcher):
    first = coordinator.submit(ROOM)
    second = coordinator.submit(ROOM)
    await coordinator.join()

    assert first.status is JobStatus.pending
    assert second.status is JobStatus.pending
    assert len(storage.list_jobs()) == 1
    assert fetcher.calls == [ROOM]


async def test_concurrent_submitters_share_one_job(coordinator, storage, fetcher):
    async def submit():
        return coordinator.submit(ROOM)

    results = await asyncio.gather(*(submit() for _ in range(5)))
    await coordinator.join()

    assert all(r.status is JobStatus.pending for r in results)
    assert len(storage.list_jobs()) == 1
    assert fetcher.calls == [ROOM]


async def test_pipeline_completes_with_transport(coordinator, fake_maps):
    coordinator.submit(ROOM)
    await coordinator.join()

    job = coordinator.query(ROOM)
    assert job.status is JobStatus.complete
    assert job.content["miete_/_monat"] == "CHF 1200"
    assert job.content["adresse"] == "Musterstrasse 5"
    assert job.walking_time == "40 mins"
    assert job.transit_time == "18 mins"
    assert job.cycling_time == "12 mins"
    assert job.latitude is not None
    # address and locality are combined before geocoding
    assert fake_maps.geocoded == ["Musterstrasse 5, 8001 Zürich"]


async def test_resubmitting_complete_job_returns_listing(coordinator, fetcher):
    coordinator.submit(ROOM)
    await coordinator.join()

    result = coordinator.submit(ROOM)
    assert result.status is JobStatus.complete
    assert result.body["adresse"] == "Musterstrasse 5"
    assert "status" not in result.body
    assert fetcher.calls == [ROOM]


async def test_empty_page_fails(coordinator):
    coordinator.submit(GONE)
    await coordinator.join()

    job = coordinator.query(GONE)
    assert job.status is JobStatus.failed
    assert job.content == {}


async def test_fetch_failure_fails(coordinator):
    coordinator.submit(DOWN)
    await coordinator.join()
    assert coordinator.query(DOWN).status is JobStatus.failed


async def test_unexpected_fetch_error_fails(storage, fake_maps):
    coordinator = JobCoordinator(storage, FakeFetcher(crashing={ROOM}), TransportEnricher(fake_maps, DESTINATION))
    coordinator.submit(ROOM)
    await coordinator.join()

    job = coordinator.query(ROOM)
    assert job.status is JobStatus.failed
    assert job.content == {}
    assert fake_maps.geocoded == []


async def test_failed_job_is_not_retried(coordinator, fetcher):
    coordinator.submit(DOWN)
    await coordinator.join()

    result = coordinator.submit(DOWN)
    await coordinator.join()
    assert result.body == {"status": "failed"}
    assert fetcher.calls == [DOWN]


async def test_enrichment_failure_still_completes(storage, list_page):
    maps = FakeMaps(fail_geocode=True, fail_modes=set(TravelMode))
    coordinator = JobCoordinator(storage, FakeFetcher({ROOM: list_page}), TransportEnricher(maps, DESTINATION))
    coordinator.submit(ROOM)
    await coordinator.join()

    job = coordinator.query(ROOM)
    assert job.status is JobStatus.complete
    assert job.walking_time is None
    assert job.latitude is None


async def test_listing_without_address_skips_enrichment(storage, fake_maps):
    page = "<h2>Daten und Miete</h2><ul><li><strong>Zimmer:</strong> 1</li></ul>"
    coordinator = JobCoordinator(storage, FakeFetcher({ROOM: page}), TransportEnricher(fake_maps, DESTINATION))
    coordinator.submit(ROOM)
    await coordinator.join()

    assert coordinator.query(ROOM).status is JobStatus.complete
    assert fake_maps.geocoded == []


async def test_background_crash_is_logged_not_raised(coordinator, storage, monkeypatch, log_records):
    def broken_complete(url, listing):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(storage, "complete", broken_complete)
    result = coordinator.submit(ROOM)
    await coordinator.join()

    assert result.status is JobStatus.pending
    assert coordinator.query(ROOM).status is JobStatus.pending
    assert coordinator.in_flight == 0
    assert any("crashed" in str(m) for m in log_records)


async def test_query_trims_like_submit(coordinator):
    coordinator.submit(f"  {ROOM}  ")
    await coordinator.join()
    assert coordinator.query(f" {ROOM}\n").url == ROOM


def test_query_rejects_invalid_url(coordinator):
    with pytest.raises(InvalidUrl):
        coordinator.query("http://[::1/room")


async def test_join_without_tasks(coordinator):
    await coordinator.join()
    assert coordinator.in_flight == 0


# ── Transport recompute ────────────────────────────────────────────────────────

async def test_recompute_transport(coordinator, storage, fake_maps):
    storage.create_pending(ROOM)
    job_id = storage.get_by_url(ROOM).id

    update = await coordinator.recompute_transport(job_id, "Langstrasse 10", "8004 Zürich")

    assert isinstance(update, TransportUpdate)
    assert update.complete_address == "Langstrasse 10, 8004 Zürich"
    assert update.coordinates is not None
    assert storage.get_by_id(job_id).transit_time == "18 mins"


async def test_recompute_is_idempotent(coordinator, storage):
    storage.create_pending(ROOM)
    job_id = storage.get_by_url(ROOM).id

    await coordinator.recompute_transport(job_id, "Langstrasse 10", "8004 Zürich")
    first = storage.get_by_id(job_id)
    await coordinator.recompute_transport(job_id, "Langstrasse 10", "8004 Zürich")
    second = storage.get_by_id(job_id)

    assert first == second


async def test_recompute_unknown_job(coordinator):
    with pytest.raises(JobNotFound):
        await coordinator.recompute_transport(404, "Langstrasse 10")


async def test_recompute_missing(storage, list_page, fake_maps):
    fetcher = FakeFetcher({ROOM: list_page})
    flaky_maps = FakeMaps(fail_modes={TravelMode.transit})
    coordinator = JobCoordinator(storage, fetcher, TransportEnricher(flaky_maps, DESTINATION))
    coordinator.submit(ROOM)
    coordinator.submit(DOWN)
    await coordinator.join()
    assert coordinator.query(ROOM).transit_time is None

    coordinator = JobCoordinator(storage, fetcher, TransportEnricher(fake_maps, DESTINATION))
    results = await coordinator.recompute_missing()

    # the failed job has no address and is skipped
    assert [r.id for r in results] == [coordinator.query(ROOM).id]
    assert coordinator.query(ROOM).transit_time == "18 mins"
    assert storage.list_missing_transport() == [coordinator.query(DOWN)]


async def test_recompute_missing_collects_errors(coordinator, storage, monkeypatch):
    storage.create_pending(ROOM)
    storage.complete(ROOM, {"adresse": "Musterstrasse 5"})
    job_id = storage.get_by_url(ROOM).id

    def broken_update(job_id, metrics):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(storage, "update_transport", broken_update)
    results = await coordinator.recompute_missing()

    assert results == [TransportUpdateError(id=job_id, error="Failed to process address")]
