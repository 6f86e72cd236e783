from collections.abc import Iterable

from bs4 import Tag

from room_scout.scraper.strategy import ExtractionStrategy


class ListItemStrategy(ExtractionStrategy):
    """<h2>Section</h2><ul><li><strong>Label</strong> value</li>...</ul>"""

    name = "list"
    heading_selector = "h2"

    @staticmethod
    def _list_after(heading: Tag) -> Tag | None:
        block = heading.find_next_sibling()
        if isinstance(block, Tag) and block.name == "ul":
            return block
        return None

    def has_content(self, heading: Tag) -> bool:
        return self._list_after(heading) is not None

    def table_items(self, heading: Tag) -> Iterable[Tag]:
        block = self._list_after(heading)
        if block is None:
            return []
        return block.find_all("li")
