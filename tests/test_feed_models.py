"""Tests for home feed response decoding."""
import copy

import pytest

from core.network.errors import DecodingError
from feeds.models import (
    AssetSubType,
    AssetType,
    DesignSlug,
    HomeFeedsResponse,
)
from tests._qt_test_utils import feed_payload


class TestDecode:

    def test_full_page(self):
        response = HomeFeedsResponse.from_dict(feed_payload(["OTTWidget", "CarousalWidget"], page=2))

        assert len(response.data) == 2
        assert response.data[0].design_slug is DesignSlug.OTT_RAIL
        assert response.data[1].design_slug is DesignSlug.CAROUSEL
        assert response.pagination.current_page == 2
        assert response.pagination.total_count == 30

        asset = response.data[0].contents[0].assets[0]
        assert asset.asset_type is AssetType.IMAGE
        assert asset.type is AssetSubType.THUMBNAIL_LIST
        assert asset.source_path == "/2/0/list.jpg"

    def test_empty_data(self):
        response = HomeFeedsResponse.from_dict(feed_payload([]))
        assert response.data == ()

    def test_image_paths_skip_video_and_other_subtypes(self):
        feed = HomeFeedsResponse.from_dict(feed_payload(["OTTWidget"])).data[0]
        assert feed.image_paths(AssetSubType.THUMBNAIL_LIST) == ["/0/0/list.jpg"]
        assert feed.image_paths(AssetSubType.THUMBNAIL) == ["/0/0/thumb.jpg"]
        assert feed.image_paths(AssetSubType.HLS) == []


class TestDecodeFailures:

    def test_missing_total_count(self):
        payload = feed_payload(["OTTWidget"])
        del payload["pagination"]["totalCount"]
        with pytest.raises(DecodingError, match="totalCount"):
            HomeFeedsResponse.from_dict(payload)

    def test_unknown_design_slug(self):
        with pytest.raises(DecodingError, match="designSlug"):
            HomeFeedsResponse.from_dict(feed_payload(["GridWidget"]))

    def test_unknown_asset_type(self):
        payload = feed_payload(["OTTWidget"])
        payload["data"][0]["contents"][0]["assets"][0]["assetType"] = "AUDIO"
        with pytest.raises(DecodingError):
            HomeFeedsResponse.from_dict(payload)

    @pytest.mark.parametrize("value", ["3", True, None, 1.5])
    def test_wrong_type_for_count(self, value):
        payload = feed_payload(["OTTWidget"])
        payload["pagination"]["totalPages"] = value
        with pytest.raises(DecodingError):
            HomeFeedsResponse.from_dict(payload)

    def test_data_not_a_list(self):
        payload = feed_payload([])
        payload["data"] = {"title": "x"}
        with pytest.raises(DecodingError):
            HomeFeedsResponse.from_dict(payload)

    def test_top_level_not_an_object(self):
        with pytest.raises(DecodingError):
            HomeFeedsResponse.from_dict([1, 2, 3])

    def test_decode_does_not_mutate_payload(self):
        payload = feed_payload(["OTTWidget"])
        before = copy.deepcopy(payload)
        HomeFeedsResponse.from_dict(payload)
        assert payload == before
