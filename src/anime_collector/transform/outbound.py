from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ..catalog.shikimori import CatalogClient
from ..core.config import ServiceSettings
from ..core.models import (
    AssociatedItem,
    CatalogRecord,
    EnrichmentRecord,
    NameItem,
    OutboundRecord,
    RelatedSummary,
    SiteLink,
    UrlItem,
)
from ..utils.log import get_logger
from ..utils.urls import asset_url, fix_url, join_url

log = get_logger(__name__)

KIND_LABELS = {
    "tv": "TV Сериал",
    "ova": "OVA",
    "movie": "Фильм",
    "special": "Специальный выпуск",
}

STATUS_LABELS = {
    "released": "Вышел",
    "ongoing": "Онгоинг",
    "tba": "Неизвестно",
    "anons": "Анонс",
}

DEFAULT_MINIMAL_AGE = "16"
DEFAULT_COUNTRY = "Япония"
DEFAULT_DESCRIPTION = "Нет описания"
DEFAULT_SEASON = "1"
REVIEW_SITE = "kinopoisk"
SCREENSHOT_SLOTS = 4


def translate_kind(kind: str) -> str:
    return KIND_LABELS.get(kind, kind)


def translate_status(status: str) -> str:
    return STATUS_LABELS.get(status, status)


def format_score(score: float | str | None) -> str | None:
    """Round to one decimal place; a missing or zero score becomes ``None``."""
    if not score:
        return None
    try:
        value = Decimal(str(score))
    except InvalidOperation:
        value = None
    if value is None or not value.is_finite():
        log.warning("score_unparseable", score=score)
        return None
    if not value:
        return None
    return str(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def as_name_items(values: list[str]) -> list[NameItem]:
    return [NameItem(name=v) for v in values]


class OutboundBuilder:
    """Merges a catalog record, its optional Kodik match and related titles into an
    :class:`OutboundRecord`."""

    def __init__(self, catalog: CatalogClient, settings: ServiceSettings) -> None:
        self.catalog = catalog
        self.settings = settings

    def base_record(self, record: CatalogRecord) -> OutboundRecord:
        """Catalog-only projection with every default filled in."""
        aired = record.aired_on.date if record.aired_on and record.aired_on.date else ""
        return OutboundRecord(
            id=int(record.id),
            licensenameru=bool(record.license_name_ru),
            name=record.name or "",
            russian=record.russian or "",
            japanese=record.japanese or "",
            poster=asset_url(self.settings.asset_base_url, record.id, "poster.jpeg"),
            kind=translate_kind(record.kind or ""),
            score=format_score(record.score),
            status=translate_status(record.status or ""),
            episodes=record.episodes or 0,
            duration=record.duration or 0,
            season=record.season or "",
            released=aired,
            description=record.description or DEFAULT_DESCRIPTION,
            screenshots=[
                UrlItem(url=asset_url(self.settings.asset_base_url, record.id, f"screenshot{slot}.jpg"))
                for slot in range(1, SCREENSHOT_SLOTS + 1)
            ],
            externallinks=[
                SiteLink(site=REVIEW_SITE, url=link.url)
                for link in record.external_links
                if link.kind == REVIEW_SITE and link.url
            ],
            fandubbers=", ".join(record.fandubbers),
        )

    def associated(self, related: list[RelatedSummary]) -> list[AssociatedItem]:
        return [
            AssociatedItem(
                id=str(r.id),
                title=r.title,
                poster=fix_url(join_url(self.settings.catalog_site_url, r.poster_url)) or "",
            )
            for r in related
        ]

    def apply_enrichment(self, outbound: OutboundRecord, enrichment: EnrichmentRecord) -> OutboundRecord:
        """Overlay Kodik data; every field listed here replaces the catalog value."""
        material = enrichment.material_data
        player = fix_url(join_url(self.settings.kodik_player_host, enrichment.link)) or ""
        return outbound.model_copy(
            update={
                "alternative_player": player,
                "minimal_age": str(material.minimal_age or DEFAULT_MINIMAL_AGE),
                "countries": ", ".join(material.countries or [DEFAULT_COUNTRY]),
                "description": material.description or DEFAULT_DESCRIPTION,
                "genres": as_name_items(material.anime_genres),
                "studios": as_name_items(material.anime_studios),
                "actors": as_name_items(material.actors),
                "directors": as_name_items(material.directors),
                "season": str(enrichment.last_season or DEFAULT_SEASON),
            }
        )

    async def build(self, record: CatalogRecord, enrichment: EnrichmentRecord | None = None) -> OutboundRecord:
        outbound = self.base_record(record)

        related_ids = record.related_anime_ids()
        if related_ids:
            related = await self.catalog.fetch_related(related_ids)
            outbound = outbound.model_copy(update={"associated": self.associated(related)})

        if enrichment is not None:
            outbound = self.apply_enrichment(outbound, enrichment)

        log.info(
            "outbound_built",
            anime_id=outbound.id,
            associated=len(outbound.associated),
            enriched=enrichment is not None,
            score=outbound.score,
        )
        return outbound
