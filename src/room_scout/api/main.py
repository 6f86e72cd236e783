from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from loguru import logger
from pydantic import AliasChoices, BaseModel, Field

from room_scout.config import Config, settings
from room_scout.enrichment import GoogleMapsClient, TransportEnricher
from room_scout.exceptions import InvalidUrl, JobNotFound
from room_scout.pipeline import JobCoordinator
from room_scout.schema import Job, TransportUpdate, TransportUpdateError
from room_scout.scraper import ListingExtractor, build_fetcher
from room_scout.storage import JobStorage
from room_scout.utils import setup_logger


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    setup_logger(settings.log_level)
    config = settings.load_config()
    storage = JobStorage(settings.data_dir)

    async with AsyncExitStack() as stack:
        fetcher = await stack.enter_async_context(build_fetcher(config.fetcher))
        maps = await stack.enter_async_context(
            GoogleMapsClient(
                api_key=settings.google_maps_api_key,
                base_url=config.maps.base_url,
                language=config.maps.language,
                timeout=config.maps.timeout,
            )
        )
        enricher = TransportEnricher(maps, config.destination)
        coordinator = JobCoordinator(storage, fetcher, enricher, ListingExtractor(), config.address)

        app.state.storage = storage
        app.state.maps = maps
        app.state.enricher = enricher
        app.state.coordinator = coordinator
        app.state.config = config
        logger.info(f"Serving with '{config.fetcher.mode}' fetcher, database in {settings.data_dir}")
        yield

        if coordinator.in_flight:
            logger.info(f"Waiting for {coordinator.in_flight} scrape jobs to finish...")
        await coordinator.join()


app = FastAPI(lifespan=lifespan)


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_storage(request: Request) -> JobStorage:
    return request.app.state.storage


def get_coordinator(request: Request) -> JobCoordinator:
    return request.app.state.coordinator


def get_maps(request: Request) -> GoogleMapsClient:
    return request.app.state.maps


def get_enricher(request: Request) -> TransportEnricher:
    return request.app.state.enricher


# ── Scrape ───────────────────────────────────────────────────────────────────

class ScrapeRequest(BaseModel):
    url: str | None = None


@app.post("/api/scrape")
async def scrape(body: ScrapeRequest, coordinator: JobCoordinator = Depends(get_coordinator)):
    try:
        result = coordinator.submit(body.url)
    except InvalidUrl as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result.body


@app.get("/api/scrape")
async def scrape_status(url: str, coordinator: JobCoordinator = Depends(get_coordinator)) -> Job:
    try:
        job = coordinator.query(url)
    except InvalidUrl as e:
        raise HTTPException(status_code=400, detail=str(e))
    if job is None:
        raise HTTPException(status_code=404, detail="No job for this URL")
    return job


# ── Houses ───────────────────────────────────────────────────────────────────

class LikeRequest(BaseModel):
    liked: bool


class DoneRequest(BaseModel):
    done: bool


@app.get("/api/houses")
async def list_houses(storage: JobStorage = Depends(get_storage)) -> list[Job]:
    return storage.list_jobs()


@app.patch("/api/houses/{job_id}/like")
async def like_house(job_id: int, body: LikeRequest, storage: JobStorage = Depends(get_storage)) -> Job:
    try:
        storage.set_liked(job_id, body.liked)
    except JobNotFound:
        raise HTTPException(status_code=404, detail="House not found")
    job = storage.get_by_id(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="House not found")
    return job


@app.patch("/api/houses/{job_id}/done")
async def mark_done(job_id: int, body: DoneRequest, storage: JobStorage = Depends(get_storage)):
    try:
        storage.set_done(job_id, body.done)
    except JobNotFound:
        raise HTTPException(status_code=404, detail="House not found")
    return {"success": True, "done": body.done}


@app.delete("/api/houses/{job_id}")
async def delete_house(job_id: int, storage: JobStorage = Depends(get_storage)):
    try:
        storage.delete(job_id)
    except JobNotFound:
        raise HTTPException(status_code=404, detail="House not found")
    return {"success": True}


# ── Transport ────────────────────────────────────────────────────────────────

class TransportRequest(BaseModel):
    job_id: int | None = Field(default=None, validation_alias=AliasChoices("jobId", "houseId", "job_id"))
    address: str | None = None
    locality: str | None = Field(default=None, validation_alias=AliasChoices("locality", "ort"))


def _transport_entry(update: TransportUpdate | TransportUpdateError) -> dict[str, Any]:
    if isinstance(update, TransportUpdateError):
        return update.model_dump()
    return {
        "id": update.id,
        "address": update.address,
        "transportTimes": update.transport.model_dump(exclude={"latitude", "longitude"}),
        "coordinates": update.coordinates.model_dump() if update.coordinates else None,
    }


def _require_maps_key(maps: GoogleMapsClient) -> None:
    if not maps.configured:
        logger.error("Google Maps API key not configured")
        raise HTTPException(status_code=500, detail="Google Maps API key not configured")


@app.post("/api/transport")
async def recompute_transport(
    body: TransportRequest,
    coordinator: JobCoordinator = Depends(get_coordinator),
    maps: GoogleMapsClient = Depends(get_maps),
    enricher: TransportEnricher = Depends(get_enricher),
):
    _require_maps_key(maps)
    if body.job_id is None or not body.address:
        raise HTTPException(status_code=400, detail="Job id and address are required")
    try:
        update = await coordinator.recompute_transport(body.job_id, body.address, body.locality)
    except JobNotFound:
        raise HTTPException(status_code=404, detail="House not found")
    entry = _transport_entry(update)
    return {
        "success": True,
        "transportTimes": entry["transportTimes"],
        "coordinates": entry["coordinates"],
        "destination": enricher.destination.model_dump(),
    }


@app.get("/api/transport")
async def recompute_missing_transport(
    coordinator: JobCoordinator = Depends(get_coordinator),
    maps: GoogleMapsClient = Depends(get_maps),
    enricher: TransportEnricher = Depends(get_enricher),
):
    _require_maps_key(maps)
    results = await coordinator.recompute_missing()
    return {
        "success": True,
        "processed": len(results),
        "results": [_transport_entry(r) for r in results],
        "destination": enricher.destination.model_dump(),
    }


# ── Misc ─────────────────────────────────────────────────────────────────────

@app.get("/api/debug")
async def debug(
    config: Config = Depends(get_config),
    maps: GoogleMapsClient = Depends(get_maps),
    enricher: TransportEnricher = Depends(get_enricher),
):
    api_test = None
    if maps.configured:
        api_test = await enricher.check_connectivity(config.maps.check_address)
    return {
        "hasServerApiKey": maps.configured,
        "timestamp": datetime.now(UTC).isoformat(),
        "apiTest": api_test,
    }


@app.get("/api/test-geocoding")
async def geocoding_check(
    config: Config = Depends(get_config),
    maps: GoogleMapsClient = Depends(get_maps),
    enricher: TransportEnricher = Depends(get_enricher),
):
    _require_maps_key(maps)
    return await enricher.check_connectivity(config.maps.check_address)


# ── Entry point ───────────────────────────────────────────────────────────────

def serve(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    uvicorn.run("room_scout.api.main:app", host=host, port=port, reload=reload)
