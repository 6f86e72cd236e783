"""Shared machinery for turning listing markup into a flat field mapping.

A listing page is a sequence of headings, each followed by the content that
belongs to it. Sections come in two kinds:

  - table: every block is one "<strong>Label</strong> value" item
  - text:  the first paragraph is taken as free text

Strategies differ only in how headings are found and which sibling blocks
count as a section's content.
"""
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from enum import StrEnum

from bs4 import BeautifulSoup, Tag
from loguru import logger
from pydantic import BaseModel, ConfigDict

from room_scout.schema import ExtractedListing
from room_scout.utils.scraper import inner_text

HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
LABEL_TAGS = ["strong", "b"]


class SectionKind(StrEnum):
    table = "table"
    text = "text"


class Section(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    kind: SectionKind
    # free-text sections only
    key: str | None = None
    # labels whose value is rendered as a hyperlink
    link_labels: frozenset[str] = frozenset()
    collapse_compound: bool = False


SECTIONS: tuple[Section, ...] = (
    Section(title="Daten und Miete", kind=SectionKind.table),
    Section(
        title="Adresse",
        kind=SectionKind.table,
        link_labels=frozenset({"Region", "Kreis / Quartier"}),
        collapse_compound=True,
    ),
    Section(title="Beschreibungen", kind=SectionKind.text, key="description"),
    Section(title="Wir suchen", kind=SectionKind.text, key="seeking"),
    Section(title="Wir sind", kind=SectionKind.text, key="we_are"),
)


def normalize_label(label: str, collapse_compound: bool = False) -> str:
    """'Miete / Monat' -> 'miete_/_monat'; with collapse_compound 'Kreis / Quartier' -> 'kreis_quartier'."""
    label = label.strip().lower()
    if collapse_compound:
        label = label.replace(" / ", "_")
    return re.sub(r"\s+", "_", label)


def siblings_until_heading(heading: Tag) -> Iterator[Tag]:
    """Yield element siblings after *heading* up to the next heading-level element."""
    for sibling in heading.next_siblings:
        if not isinstance(sibling, Tag):
            continue
        if sibling.name in HEADING_TAGS:
            return
        yield sibling


class ExtractionStrategy(ABC):
    """One markup convention for listing pages."""

    name: str
    heading_selector: str
    sections: tuple[Section, ...] = SECTIONS

    @abstractmethod
    def table_items(self, heading: Tag) -> Iterable[Tag]:
        """Blocks holding one label/value item each."""

    @abstractmethod
    def has_content(self, heading: Tag) -> bool:
        """Whether *heading* is followed by content in this convention."""

    def find_heading(self, soup: BeautifulSoup | Tag, section: Section) -> Tag | None:
        for heading in soup.select(self.heading_selector):
            if section.title in heading.get_text(" ", strip=True):
                return heading
        return None

    def detects(self, soup: BeautifulSoup) -> bool:
        for section in self.sections:
            heading = self.find_heading(soup, section)
            if heading is not None and self.has_content(heading):
                return True
        return False

    def text_block(self, heading: Tag) -> Tag | None:
        for block in siblings_until_heading(heading):
            if block.name == "p":
                return block
        return None

    def extract(self, soup: BeautifulSoup) -> ExtractedListing:
        data: ExtractedListing = {}
        for section in self.sections:
            heading = self.find_heading(soup, section)
            if heading is None:
                logger.debug(f"[{self.name}] section not found: {section.title}")
                continue
            if section.kind is SectionKind.table:
                data.update(self._read_table(section, heading))
            else:
                block = self.text_block(heading)
                if block is not None and section.key:
                    data[section.key] = _free_text(block)
        return data

    def _read_table(self, section: Section, heading: Tag) -> ExtractedListing:
        fields: ExtractedListing = {}
        for item in self.table_items(heading):
            label_el = item.find(LABEL_TAGS)
            if not isinstance(label_el, Tag):
                continue
            label = label_el.get_text(" ", strip=True).rstrip(":").strip()
            if not label:
                continue
            if label in section.link_labels:
                link = item.find("a")
                value = link.get_text(" ", strip=True) if isinstance(link, Tag) else ""
            else:
                label_el.extract()
                value = item.get_text(" ", strip=True)
            fields[normalize_label(label, section.collapse_compound)] = value
        return fields


def _free_text(block: Tag) -> str:
    for decoration in block.select(".label"):
        decoration.decompose()
    first = next((c for c in block.children if not (isinstance(c, str) and not c.strip())), None)
    if isinstance(first, Tag) and first.name in LABEL_TAGS:
        first.decompose()
    return inner_text(block)
