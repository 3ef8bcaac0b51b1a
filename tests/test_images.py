import requests

from conftest import BASE_URL, FakeResponse, make_client, post
from wpgallery.images import ImageResolver, pick_sized_url
from wpgallery.models import ImageTier

MEDIA_URL = f"{BASE_URL}/media"


def _no_network(url, params):
    raise AssertionError(f"unexpected request to {url}")


def _resolver(handler=_no_network):
    return ImageResolver(make_client(handler, max_attempts=1), MEDIA_URL)


def test_pick_sized_url_prefers_large_then_medium_large_then_source():
    media = {
        "source_url": "https://cdn/orig.jpg",
        "media_details": {
            "sizes": {
                "medium_large": {"source_url": "https://cdn/ml.jpg"},
                "large": {"source_url": "https://cdn/large.jpg"},
                "thumbnail": {"source_url": "https://cdn/thumb.jpg"},
            }
        },
    }
    assert pick_sized_url(media) == "https://cdn/large.jpg"
    del media["media_details"]["sizes"]["large"]
    assert pick_sized_url(media) == "https://cdn/ml.jpg"
    media["media_details"]["sizes"] = []
    assert pick_sized_url(media) == "https://cdn/orig.jpg"
    assert pick_sized_url({"code": "rest_forbidden"}) is None


def test_featured_wins_over_inline():
    item = post(1, featured="https://cdn/featured.jpg", content='<p><img src="https://cdn/inline.jpg"></p>')
    ref = _resolver().resolve(item)
    assert ref.url == "https://cdn/featured.jpg"
    assert ref.tier is ImageTier.FEATURED
    assert ref.alt_text == "alt 1"


def test_inline_used_when_no_featured_media():
    item = post(
        2,
        content='<p>x</p><IMG class="a" alt="first" src=\'https://cdn/one.jpg\'><img src="https://cdn/two.jpg">',
    )
    ref = _resolver().resolve(item)
    assert ref.url == "https://cdn/one.jpg"
    assert ref.tier is ImageTier.INLINE
    assert ref.alt_text == "first"


def test_attachment_lookup_only_when_other_tiers_miss():
    def handler(url, params):
        assert url == MEDIA_URL
        assert params == {
            "parent": 3,
            "media_type": "image",
            "per_page": 1,
            "orderby": "menu_order",
            "order": "asc",
        }
        return FakeResponse(200, [{
            "source_url": "https://cdn/att.jpg",
            "media_details": {"sizes": {"large": {"source_url": "https://cdn/att-large.jpg"}}},
        }])

    resolver = _resolver(handler)
    ref = resolver.resolve(post(3, content="<p>no pictures</p>"))
    assert ref.url == "https://cdn/att-large.jpg"
    assert ref.tier is ImageTier.ATTACHMENT
    assert len(resolver.client.session.calls) == 1


def test_returns_none_when_every_tier_misses():
    resolver = _resolver(lambda url, params: FakeResponse(200, []))
    assert resolver.resolve(post(4)) is None


def test_tier_failure_falls_through_to_next_tier():
    item = post(5, content='<img src="https://cdn/inline.jpg">')
    item["_embedded"] = {"wp:featuredmedia": "not-a-list-of-dicts"}
    ref = _resolver().resolve(item)
    assert ref.tier is ImageTier.INLINE


def test_attachment_network_failure_yields_none():
    resolver = _resolver(lambda url, params: requests.ConnectionError("down"))
    assert resolver.resolve(post(6)) is None


def test_media_entity_is_its_own_featured_image():
    media = {
        "id": 7,
        "type": "attachment",
        "media_type": "image",
        "source_url": "https://cdn/m.jpg",
        "alt_text": "sunset",
        "media_details": {"sizes": {}},
    }
    ref = _resolver().resolve(media)
    assert ref.url == "https://cdn/m.jpg"
    assert ref.tier is ImageTier.FEATURED
