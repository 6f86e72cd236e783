"""Command line entry point.

Commands:
  - serve:      run the HTTP API
  - scrape:     scrape one listing URL in the foreground and wait for the result
  - transport:  recompute travel times for every listing that is missing one
  - check-maps: verify the Google Maps key can geocode and route
"""

import argparse
import asyncio
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger

from room_scout.config import Config, settings
from room_scout.enrichment import GoogleMapsClient, TransportEnricher
from room_scout.exceptions import InvalidUrl
from room_scout.pipeline import JobCoordinator
from room_scout.schema import JobStatus, TransportUpdateError
from room_scout.scraper import ListingExtractor, build_fetcher
from room_scout.storage import JobStorage
from room_scout.utils import log_resources, setup_logger


def _maps_client(config: Config) -> GoogleMapsClient:
    return GoogleMapsClient(
        api_key=settings.google_maps_api_key,
        base_url=config.maps.base_url,
        language=config.maps.language,
        timeout=config.maps.timeout,
    )


@asynccontextmanager
async def _coordinator(config: Config) -> AsyncIterator[JobCoordinator]:
    storage = JobStorage(settings.data_dir)
    async with build_fetcher(config.fetcher) as fetcher, _maps_client(config) as maps:
        enricher = TransportEnricher(maps, config.destination)
        yield JobCoordinator(storage, fetcher, enricher, ListingExtractor(), config.address)


async def scrape_main(url: str) -> None:
    """Submit *url* and wait for its background job to finish."""
    config = settings.load_config()
    async with _coordinator(config) as coordinator:
        try:
            result = coordinator.submit(url)
        except InvalidUrl as e:
            logger.error(str(e))
            return
        if result.status.is_terminal:
            logger.info(f"Already scraped: {url} is {result.status}")
        await coordinator.join()
        job = coordinator.query(url)

    if job is None:
        logger.error(f"Job for {url} disappeared")
        return
    logger.info(f"Status: {job.status}")
    if job.status is JobStatus.complete:
        for key, value in job.content.items():
            logger.info(f"  {key}: {value}")
        logger.info(
            f"  walking={job.walking_time} transit={job.transit_time} cycling={job.cycling_time}"
            f" @ ({job.latitude}, {job.longitude})"
        )


async def transport_main() -> None:
    """Recompute transport for every job missing a travel time."""
    config = settings.load_config()
    if not settings.google_maps_api_key:
        logger.error("GOOGLE_MAPS_API_KEY is not set, nothing to do.")
        return
    log_resources()
    async with _coordinator(config) as coordinator:
        results = await coordinator.recompute_missing()
    log_resources()

    failed = [r for r in results if isinstance(r, TransportUpdateError)]
    logger.info("\n" + "=" * 10)
    logger.info("Transport recompute complete")
    logger.info("=" * 10)
    logger.info(f"Processed: {len(results)} | Failed: {len(failed)}")


async def check_maps_main() -> None:
    config = settings.load_config()
    async with _maps_client(config) as maps:
        if not maps.configured:
            logger.error("GOOGLE_MAPS_API_KEY is not set")
            return
        report = await TransportEnricher(maps, config.destination).check_connectivity(
            config.maps.check_address
        )
    level = "INFO" if report["success"] else "ERROR"
    logger.log(level, f"Geocoding: {report['geocoding']}")
    logger.log(level, f"Distance matrix: {report['distance_matrix']}")


def parse_args() -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        prog="room-scout",
        description="Scrape room listings and estimate travel times to campus",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true", default=False)

    scrape_parser = subparsers.add_parser("scrape", help="Scrape one listing URL and wait for it")
    scrape_parser.add_argument("url", help="Listing page URL")

    subparsers.add_parser("transport", help="Recompute travel times for listings missing them")
    subparsers.add_parser("check-maps", help="Check the Google Maps API key works")

    return parser.parse_args()


async def main(args: argparse.Namespace) -> None:
    """Main async entry point."""
    setup_logger(settings.log_level)

    match args.command:
        case "scrape":
            await scrape_main(args.url)
        case "transport":
            await transport_main()
        case "check-maps":
            await check_maps_main()
        case _:
            logger.error("Unknown command. Use: serve, scrape, transport or check-maps")


def cli() -> None:
    """CLI entry point."""
    args = parse_args()

    if not args.command:
        print("\nPlease specify a command: serve, scrape, transport or check-maps")
        print("  Example: room-scout scrape https://www.wgzimmer.ch/...")
        sys.exit(1)

    if args.command == "serve":
        from room_scout.api.main import serve

        serve(host=args.host, port=args.port, reload=args.reload)
        return

    asyncio.run(main(args))


if __name__ == "__main__":
    cli()
