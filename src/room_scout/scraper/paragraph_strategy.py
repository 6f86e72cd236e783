from collections.abc import Iterable

from bs4 import Tag

from room_scout.scraper.strategy import LABEL_TAGS, ExtractionStrategy, siblings_until_heading


class ParagraphStrategy(ExtractionStrategy):
    """<h3>Section</h3><p><strong>Label</strong> value</p><p>...</p>

    Every paragraph between a heading and the next one is a candidate item;
    paragraphs without a bold label are skipped.
    """

    name = "paragraph"
    heading_selector = "h2, h3"

    def has_content(self, heading: Tag) -> bool:
        return any(block.name == "p" for block in siblings_until_heading(heading))

    def table_items(self, heading: Tag) -> Iterable[Tag]:
        return [
            block
            for block in siblings_until_heading(heading)
            if block.name == "p" and block.find(LABEL_TAGS) is not None
        ]


class MarkedParagraphStrategy(ParagraphStrategy):
    """Paragraph convention where section headings carry class="label".

    Unmarked headings with the same text (navigation, footers) are ignored.
    """

    name = "marked-paragraph"
    heading_selector = "h2.label, h3.label"
