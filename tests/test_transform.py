from anime_collector.core.models import CatalogRecord, EnrichmentRecord, RelatedSummary
from anime_collector.transform.outbound import (
    OutboundBuilder,
    format_score,
    translate_kind,
    translate_status,
)

from .factories import anime_payload, kodik_result


class StubCatalog:
    """Answers fetch_related from a fixed list and records the ids it was asked for."""

    def __init__(self, related: list[RelatedSummary] | None = None) -> None:
        self.related = related or []
        self.requested: list[list[str]] = []

    async def fetch_related(self, ids):
        self.requested.append(list(ids))
        return self.related


def _record(**overrides) -> CatalogRecord:
    return CatalogRecord.model_validate(anime_payload(100, **overrides))


def test_format_score():
    assert format_score(None) is None
    assert format_score(0) is None
    assert format_score(7.666) == "7.7"
    assert format_score(8.25) == "8.3"
    assert format_score(9) == "9.0"
    assert format_score("6.04") == "6.0"
    assert format_score(float("inf")) is None
    assert format_score(float("nan")) is None
    assert format_score("-Infinity") is None
    assert format_score("n/a") is None


def test_translations_pass_unknown_values_through():
    assert translate_kind("tv") == "TV Сериал"
    assert translate_kind("movie") == "Фильм"
    assert translate_kind("music") == "music"
    assert translate_status("ongoing") == "Онгоинг"
    assert translate_status("released") == "Вышел"
    assert translate_status("tba") == "Неизвестно"
    assert translate_status("paused") == "paused"


async def test_build_without_enrichment_uses_defaults(settings):
    builder = OutboundBuilder(StubCatalog(), settings)
    record = _record(score=None, description=None, kind="ova", status="ongoing")

    outbound = await builder.build(record, None)

    assert outbound.id == 100
    assert outbound.score is None
    assert outbound.kind == "OVA"
    assert outbound.status == "Онгоинг"
    assert outbound.minimal_age == "16"
    assert outbound.countries == "Япония"
    assert outbound.description == "Нет описания"
    assert outbound.genres == []
    assert outbound.studios == []
    assert outbound.actors == []
    assert outbound.directors == []
    assert outbound.alternative_player == ""
    assert outbound.season == "spring_2005"
    assert outbound.released == "2005-04-01"
    assert outbound.quality == "HD"
    assert outbound.fandubbers == "AniLibria"


async def test_build_fills_missing_names_with_empty_strings(settings):
    record = CatalogRecord(id="5")
    outbound = await OutboundBuilder(StubCatalog(), settings).build(record)

    assert outbound.name == ""
    assert outbound.russian == ""
    assert outbound.japanese == ""
    assert outbound.kind == ""
    assert outbound.status == ""
    assert outbound.released == ""
    assert outbound.episodes == 0
    assert outbound.licensenameru is False
    payload = outbound.model_dump(mode="json", by_alias=True)
    assert [key for key, value in payload.items() if value is None] == ["score"]
    assert payload["list"] == []


async def test_build_media_urls_come_from_asset_store(settings):
    outbound = await OutboundBuilder(StubCatalog(), settings).build(_record(), None)

    assert outbound.poster == "https://assets.test/bucket/anime/100/poster.jpeg"
    assert [s.url for s in outbound.screenshots] == [
        f"https://assets.test/bucket/anime/100/screenshot{i}.jpg" for i in range(1, 5)
    ]


async def test_build_keeps_only_kinopoisk_links(settings):
    record = _record(
        score=7.666,
        licenseNameRu="Лицензия",
        externalLinks=[
            {"id": "1", "kind": "official_site", "url": "https://example.jp"},
            {"id": "2", "kind": "kinopoisk", "url": "https://www.kinopoisk.ru/film/1"},
            {"id": "3", "kind": "wikipedia", "url": "https://ja.wikipedia.org/x"},
        ],
    )
    outbound = await OutboundBuilder(StubCatalog(), settings).build(record, None)

    assert outbound.score == "7.7"
    assert outbound.licensenameru is True
    assert [link.model_dump() for link in outbound.externallinks] == [
        {"site": "kinopoisk", "url": "https://www.kinopoisk.ru/film/1"}
    ]


async def test_build_resolves_related_once_per_id(settings):
    catalog = StubCatalog(
        [
            RelatedSummary(id="20", title="Сиквел", poster_url="https://shikimori.one/uploads/20.jpeg"),
            RelatedSummary(id="21", title="Приквел", poster_url="/system/animes/original/21.jpg"),
            RelatedSummary(
                id="22", title="Спешл", poster_url="https://shikimori.onehttps://shikimori.one/uploads/22.jpeg"
            ),
            RelatedSummary(id="23", title="Без постера", poster_url=None),
        ]
    )
    record = _record(
        related=[
            {"id": "a", "anime": {"id": "20", "name": "B"}, "manga": None, "relationKind": "sequel"},
            {"id": "b", "anime": {"id": "20", "name": "B"}, "manga": None, "relationKind": "other"},
            {"id": "c", "anime": None, "manga": {"id": "99", "name": "M"}, "relationKind": "adaptation"},
            {"id": "d", "anime": {"id": "21", "name": "C"}, "manga": None, "relationKind": "prequel"},
        ]
    )

    outbound = await OutboundBuilder(catalog, settings).build(record, None)

    assert catalog.requested == [["20", "21"]]
    assert [a.model_dump() for a in outbound.associated] == [
        {"id": "20", "title": "Сиквел", "poster": "https://shikimori.one/uploads/20.jpeg"},
        {"id": "21", "title": "Приквел", "poster": "https://shikimori.one/system/animes/original/21.jpg"},
        {"id": "22", "title": "Спешл", "poster": "https://shikimori.one/uploads/22.jpeg"},
        {"id": "23", "title": "Без постера", "poster": ""},
    ]


async def test_build_without_related_skips_lookup(settings):
    catalog = StubCatalog()
    outbound = await OutboundBuilder(catalog, settings).build(_record(), None)
    assert catalog.requested == []
    assert outbound.associated == []


async def test_build_with_enrichment_overrides_catalog_fields(settings):
    enrichment = EnrichmentRecord.model_validate(kodik_result(100))
    outbound = await OutboundBuilder(StubCatalog(), settings).build(_record(), enrichment)

    assert outbound.alternative_player == "//kodik.info/serial/100/abcdef/720p"
    assert outbound.minimal_age == "12"
    assert outbound.countries == "Япония, Китай"
    assert outbound.description == "Описание Kodik"
    assert [g.name for g in outbound.genres] == ["экшен", "фэнтези"]
    assert [s.model_dump() for s in outbound.studios] == [{"name": "Madhouse"}]
    assert [a.name for a in outbound.actors] == ["Кана Ханадзава"]
    assert [d.name for d in outbound.directors] == ["Масаси Исихама"]
    assert outbound.season == "2"


async def test_build_with_sparse_enrichment_keeps_defaults(settings):
    enrichment = EnrichmentRecord.model_validate(
        {"id": "x", "link": "/seria/5/hash/720p", "last_season": None, "material_data": {}}
    )
    outbound = await OutboundBuilder(StubCatalog(), settings).build(_record(), enrichment)

    assert outbound.alternative_player == "//kodik.info/seria/5/hash/720p"
    assert outbound.minimal_age == "16"
    assert outbound.countries == "Япония"
    # Kodik data replaces the catalog description even when it has none
    assert outbound.description == "Нет описания"
    assert outbound.genres == []
    assert outbound.season == "1"


async def test_build_repairs_doubled_player_link(settings):
    enrichment = EnrichmentRecord.model_validate(kodik_result(100, link="//kodik.info//kodik.info/seria/1/h/720p"))
    outbound = await OutboundBuilder(StubCatalog(), settings).build(_record(), enrichment)
    assert outbound.alternative_player == "//kodik.info/seria/1/h/720p"
