"""
Home feed source - modular architecture

Modules:
    constants   - Endpoints, page size, cache settings
    models      - Typed response models and decoder
    paginator   - Paginator: "reached the end" events to page requests
    repository  - FeedRepository: serialized request chain, error collapsing
    home_model  - HomeModel: aggregate feed list and row lookups
"""
from feeds.home_model import HomeModel, HomeSection, HomeThumbnailRailWithHeader
from feeds.models import HomeFeed, HomeFeedsResponse, Pagination
from feeds.paginator import Paginator
from feeds.repository import FeedRepository, FeedRepositoryError, RepositoryErrorKind

__all__ = [
    "HomeModel",
    "HomeSection",
    "HomeThumbnailRailWithHeader",
    "HomeFeed",
    "HomeFeedsResponse",
    "Pagination",
    "Paginator",
    "FeedRepository",
    "FeedRepositoryError",
    "RepositoryErrorKind",
]
