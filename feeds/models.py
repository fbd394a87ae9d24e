"""
Home feed response models and their JSON decoder.

Responsibilities:
    - Typed, immutable representation of one feed page
    - Strict decoding: a missing key, wrong type or unknown enum value raises
      DecodingError so the request is reported as failed
    - No network I/O - receives the parsed JSON payload from NetworkService
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Tuple, Type, TypeVar

from core.network.errors import DecodingError

E = TypeVar("E", bound=Enum)


class DesignSlug(Enum):
    """Server-side widget kind of a feed."""
    OTT_RAIL = "OTTWidget"
    CAROUSEL = "CarousalWidget"


class AssetType(Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class AssetSubType(Enum):
    DASH = "dash"
    DETAIL = "detail"
    HLS = "hls"
    THUMBNAIL = "thumbnail"
    THUMBNAIL_LIST = "thumbnail_list"


def _field(payload: Any, key: str, expected: type, where: str) -> Any:
    if not isinstance(payload, Mapping):
        raise DecodingError(f"{where}: expected object, got {type(payload).__name__}")
    if key not in payload:
        raise DecodingError(f"{where}: missing key '{key}'")
    value = payload[key]
    # bool is an int subclass; a JSON true is never a valid count.
    if expected is int and isinstance(value, bool):
        raise DecodingError(f"{where}.{key}: expected int, got bool")
    if not isinstance(value, expected):
        raise DecodingError(
            f"{where}.{key}: expected {expected.__name__}, got {type(value).__name__}"
        )
    return value


def _enum(enum_cls: Type[E], raw: str, where: str) -> E:
    try:
        return enum_cls(raw)
    except ValueError:
        raise DecodingError(f"{where}: unknown {enum_cls.__name__} value {raw!r}") from None


@dataclass(frozen=True)
class HomeAsset:
    asset_type: AssetType
    source_url: str
    type: AssetSubType
    source_path: str

    @classmethod
    def from_dict(cls, payload: Any, where: str = "asset") -> "HomeAsset":
        return cls(
            asset_type=_enum(AssetType, _field(payload, "assetType", str, where), f"{where}.assetType"),
            source_url=_field(payload, "sourceUrl", str, where),
            type=_enum(AssetSubType, _field(payload, "type", str, where), f"{where}.type"),
            source_path=_field(payload, "sourcePath", str, where),
        )

    @property
    def is_image(self) -> bool:
        return self.asset_type is AssetType.IMAGE


@dataclass(frozen=True)
class Content:
    assets: Tuple[HomeAsset, ...]

    @classmethod
    def from_dict(cls, payload: Any, where: str = "content") -> "Content":
        raw = _field(payload, "assets", list, where)
        return cls(assets=tuple(
            HomeAsset.from_dict(item, f"{where}.assets[{i}]") for i, item in enumerate(raw)
        ))


@dataclass(frozen=True)
class HomeFeed:
    title: str
    contents: Tuple[Content, ...]
    design_slug: DesignSlug

    @classmethod
    def from_dict(cls, payload: Any, where: str = "feed") -> "HomeFeed":
        raw_contents = _field(payload, "contents", list, where)
        return cls(
            title=_field(payload, "title", str, where),
            contents=tuple(
                Content.from_dict(item, f"{where}.contents[{i}]") for i, item in enumerate(raw_contents)
            ),
            design_slug=_enum(DesignSlug, _field(payload, "designSlug", str, where), f"{where}.designSlug"),
        )

    def image_paths(self, sub_type: AssetSubType) -> list:
        """Source paths of the image assets of ``sub_type``, in content order."""
        return [
            asset.source_path
            for content in self.contents
            for asset in content.assets
            if asset.is_image and asset.type is sub_type
        ]


@dataclass(frozen=True)
class Pagination:
    total_pages: int
    current_page: int
    per_page: int
    total_count: int

    @classmethod
    def from_dict(cls, payload: Any, where: str = "pagination") -> "Pagination":
        return cls(
            total_pages=_field(payload, "totalPages", int, where),
            current_page=_field(payload, "currentPage", int, where),
            per_page=_field(payload, "perPage", int, where),
            total_count=_field(payload, "totalCount", int, where),
        )


@dataclass(frozen=True)
class HomeFeedsResponse:
    """One page of home feeds."""
    data: Tuple[HomeFeed, ...]
    pagination: Pagination

    @classmethod
    def from_dict(cls, payload: Any) -> "HomeFeedsResponse":
        raw_data = _field(payload, "data", list, "response")
        return cls(
            data=tuple(HomeFeed.from_dict(item, f"data[{i}]") for i, item in enumerate(raw_data)),
            pagination=Pagination.from_dict(_field(payload, "pagination", dict, "response")),
        )
