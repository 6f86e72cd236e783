from collections.abc import Sequence

from bs4 import BeautifulSoup
from loguru import logger

from room_scout.exceptions import EmptyListingError
from room_scout.schema import ExtractedListing
from room_scout.scraper.list_strategy import ListItemStrategy
from room_scout.scraper.paragraph_strategy import MarkedParagraphStrategy, ParagraphStrategy
from room_scout.scraper.strategy import ExtractionStrategy

# Most specific convention first.
DEFAULT_STRATEGIES: tuple[ExtractionStrategy, ...] = (
    MarkedParagraphStrategy(),
    ListItemStrategy(),
    ParagraphStrategy(),
)


class ListingExtractor:
    """Pick the markup convention a page uses and extract its fields."""

    def __init__(self, strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES) -> None:
        if not strategies:
            raise ValueError("at least one extraction strategy is required")
        self._strategies = tuple(strategies)

    def select(self, soup: BeautifulSoup) -> ExtractionStrategy | None:
        for strategy in self._strategies:
            if strategy.detects(soup):
                return strategy
        return None

    def extract(self, html: str) -> ExtractedListing:
        """
        Raises:
            EmptyListingError if no known section yielded a field
        """
        soup = BeautifulSoup(html, "html.parser")
        strategy = self.select(soup)
        if strategy is None:
            raise EmptyListingError("no known section heading found on page")

        data = strategy.extract(soup)
        if not data:
            raise EmptyListingError(f"sections matched by '{strategy.name}' yielded no fields")
        logger.info(f"Extracted {len(data)} fields using '{strategy.name}' convention")
        return data
