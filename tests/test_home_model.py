"""Tests for HomeModel row lookups."""
from feeds.home_model import HomeModel, HomeSection
from feeds.models import AssetSubType, HomeFeedsResponse
from tests._qt_test_utils import feed_payload


def _feeds(slugs, page=0):
    return HomeFeedsResponse.from_dict(feed_payload(slugs, page=page)).data


def test_empty_model_lookups():
    model = HomeModel()
    assert model.is_empty()
    assert model.feed_at(0) is None
    assert model.section_at(0) is None
    assert model.fetch_asset(0, AssetSubType.THUMBNAIL) == []
    rail = model.fetch_home_rail(0)
    assert rail.title == ""
    assert rail.rail_assets == []


def test_sections_follow_design_slugs():
    model = HomeModel()
    model.append(_feeds(["OTTWidget", "CarousalWidget", "OTTWidget"]))
    assert model.sections == [HomeSection.OTT_RAIL, HomeSection.CAROUSEL, HomeSection.OTT_RAIL]


def test_pages_concatenate_in_order():
    model = HomeModel()
    model.append(_feeds(["OTTWidget"], page=0))
    model.append(_feeds(["CarousalWidget"], page=1))
    assert [f.title for f in model.feeds] == ["Feed 0-0", "Feed 1-0"]
    assert len(model) == 2


def test_row_lookup_wraps():
    model = HomeModel()
    model.append(_feeds(["OTTWidget", "CarousalWidget"]))
    assert model.feed_at(2).title == "Feed 0-0"
    assert model.section_at(3) is HomeSection.CAROUSEL


def test_negative_row_is_none():
    model = HomeModel()
    model.append(_feeds(["OTTWidget"]))
    assert model.feed_at(-1) is None
    assert model.section_at(-1) is None


def test_home_rail_uses_thumbnail_list():
    model = HomeModel()
    model.append(_feeds(["OTTWidget"]))
    rail = model.fetch_home_rail(0)
    assert rail.title == "Feed 0-0"
    assert rail.rail_assets == ["/0/0/list.jpg"]


def test_clear():
    model = HomeModel()
    model.append(_feeds(["OTTWidget"]))
    model.clear()
    assert model.is_empty()
    assert model.sections == []
