import pytest

from anime_collector.utils.urls import asset_url, fix_url, join_url


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (
            "https://shikimori.onehttps://shikimori.one/uploads/poster/1.jpeg",
            "https://shikimori.one/uploads/poster/1.jpeg",
        ),
        ("//kodik.info//kodik.info/seria/1/abc/720p", "//kodik.info/seria/1/abc/720p"),
        ("//kodik.info//kodik.info//kodik.info/video/2", "//kodik.info/video/2"),
        ("https://kodik.info//kodik.info/seria/1/abc", "https://kodik.info/seria/1/abc"),
        ("//kodik.info//kodik.info?d=1", "//kodik.info?d=1"),
        ("//kodik.info//kodik.infox/a", "//kodik.info//kodik.infox/a"),
        ("https://shikimori.onehttps://shikimori.online/x.jpg", "https://shikimori.onehttps://shikimori.online/x.jpg"),
        ("https://shikimori.one/uploads/poster/1.jpeg", "https://shikimori.one/uploads/poster/1.jpeg"),
        ("//kodik.info/seria/1", "//kodik.info/seria/1"),
        ("", ""),
        (None, None),
    ],
)
def test_fix_url(raw, expected):
    assert fix_url(raw) == expected


@pytest.mark.parametrize(
    "url",
    [
        "https://shikimori.onehttps://shikimori.one/x.jpg",
        "//kodik.info//kodik.info/seria/1",
        "https://example.com/a//b",
        "relative/path",
        None,
    ],
)
def test_fix_url_is_idempotent(url):
    once = fix_url(url)
    assert fix_url(once) == once


def test_join_url_keeps_absolute_references():
    poster = "https://shikimori.one/uploads/poster/1.jpeg"
    assert join_url("https://shikimori.one", poster) == poster
    assert join_url("https://shikimori.one", "/system/animes/original/1.jpg") == (
        "https://shikimori.one/system/animes/original/1.jpg"
    )


def test_join_url_protocol_relative_base():
    assert join_url("//kodik.info", "/seria/1/abc") == "//kodik.info/seria/1/abc"
    assert join_url("//kodik.info", "//kodik.info/seria/1/abc") == "//kodik.info/seria/1/abc"
    assert join_url("//kodik.info", None) == ""


def test_asset_url():
    assert asset_url("https://assets.test/bucket/", 100, "poster.jpeg") == (
        "https://assets.test/bucket/anime/100/poster.jpeg"
    )
