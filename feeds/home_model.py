"""
HomeModel - the aggregate feed list behind the home screen.

Pages are concatenated in arrival order; sections are re-derived from the
design slugs whenever the list changes. Row lookups wrap around so a row
index past the end maps back onto the list.
"""
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, List, Optional

from feeds.models import AssetSubType, DesignSlug, HomeFeed


class HomeSection(Enum):
    """UI section kinds the home screen can render."""
    OTT_RAIL = auto()
    CAROUSEL = auto()


_SECTION_FOR_SLUG = {
    DesignSlug.OTT_RAIL: HomeSection.OTT_RAIL,
    DesignSlug.CAROUSEL: HomeSection.CAROUSEL,
}


@dataclass(frozen=True)
class HomeThumbnailRailWithHeader:
    title: str
    rail_assets: List[str] = field(default_factory=list)


class HomeModel:
    """Feed list plus the section kinds derived from it."""

    def __init__(self):
        self._feeds: List[HomeFeed] = []
        self._sections: List[HomeSection] = []

    @property
    def feeds(self) -> List[HomeFeed]:
        return list(self._feeds)

    @property
    def sections(self) -> List[HomeSection]:
        return list(self._sections)

    def __len__(self) -> int:
        return len(self._feeds)

    def is_empty(self) -> bool:
        return not self._feeds

    def append(self, feeds: Iterable[HomeFeed]) -> None:
        self._feeds.extend(feeds)
        self._configure_sections()

    def clear(self) -> None:
        self._feeds = []
        self._sections = []

    def feed_at(self, row: int) -> Optional[HomeFeed]:
        """Circular lookup: None for a negative row or an empty list."""
        if row < 0 or not self._feeds:
            return None
        return self._feeds[row % len(self._feeds)]

    def section_at(self, row: int) -> Optional[HomeSection]:
        if row < 0 or not self._sections:
            return None
        return self._sections[row % len(self._sections)]

    def fetch_asset(self, row: int, sub_type: AssetSubType) -> List[str]:
        """Image source paths of ``sub_type`` for the feed at ``row``."""
        feed = self.feed_at(row)
        if feed is None:
            return []
        return feed.image_paths(sub_type)

    def fetch_home_rail(self, row: int) -> HomeThumbnailRailWithHeader:
        feed = self.feed_at(row)
        return HomeThumbnailRailWithHeader(
            title=feed.title if feed is not None else "",
            rail_assets=self.fetch_asset(row, AssetSubType.THUMBNAIL_LIST),
        )

    def _configure_sections(self) -> None:
        self._sections = [_SECTION_FOR_SLUG[feed.design_slug] for feed in self._feeds]
