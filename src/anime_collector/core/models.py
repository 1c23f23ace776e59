from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CatalogModel(BaseModel):
    """Base for Shikimori GraphQL payloads: camelCase on the wire, unknown keys kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        coerce_numbers_to_str=True,
    )


class IncompleteDate(CatalogModel):
    year: int | None = None
    month: int | None = None
    day: int | None = None
    date: str | None = None


class Poster(CatalogModel):
    id: str | None = None
    original_url: str | None = None
    main_url: str | None = None


class ExternalLink(CatalogModel):
    id: str | None = None
    kind: str | None = None
    url: str | None = None


class RelatedTarget(CatalogModel):
    id: str | None = None
    name: str | None = None


class RelatedEntry(CatalogModel):
    id: str | None = None
    anime: RelatedTarget | None = None
    manga: RelatedTarget | None = None
    relation_kind: str | None = None
    relation_text: str | None = None

    @property
    def target_kind(self) -> str | None:
        if self.anime is not None and self.anime.id:
            return "anime"
        if self.manga is not None and self.manga.id:
            return "manga"
        return None

    @property
    def target_id(self) -> str | None:
        target = self.anime if self.target_kind == "anime" else self.manga
        return target.id if target is not None else None

    @property
    def relation_label(self) -> str | None:
        return self.relation_text or self.relation_kind


class CatalogRecord(CatalogModel):
    """One ``animes`` element returned by the catalog."""

    id: str
    mal_id: str | None = None

    # Display names
    name: str | None = None
    russian: str | None = None
    license_name_ru: str | None = None
    english: str | None = None
    japanese: str | None = None
    synonyms: list[str] = Field(default_factory=list)

    # Classification
    kind: str | None = None
    rating: str | None = None
    score: float | None = None
    status: str | None = None
    episodes: int | None = None
    episodes_aired: int | None = None
    duration: int | None = None
    aired_on: IncompleteDate | None = None
    released_on: IncompleteDate | None = None
    season: str | None = None
    url: str | None = None

    # Attribution lists
    fansubbers: list[str] = Field(default_factory=list)
    fandubbers: list[str] = Field(default_factory=list)
    licensors: list[str] = Field(default_factory=list)

    poster: Poster | None = None
    screenshots: list[dict[str, Any]] = Field(default_factory=list)
    external_links: list[ExternalLink] = Field(default_factory=list)
    related: list[RelatedEntry] = Field(default_factory=list)
    description: str | None = None

    @field_validator(
        "synonyms",
        "fansubbers",
        "fandubbers",
        "licensors",
        "screenshots",
        "external_links",
        "related",
        mode="before",
    )
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def title(self) -> str:
        return self.russian or self.name or ""

    def related_anime_ids(self) -> list[str]:
        """Unique related anime ids in first-seen order."""
        ids: list[str] = []
        for rel in self.related:
            if rel.target_kind == "anime" and rel.target_id and rel.target_id not in ids:
                ids.append(rel.target_id)
        return ids


class MaterialData(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    minimal_age: int | None = None
    countries: list[str] = Field(default_factory=list)
    description: str | None = None
    anime_description: str | None = None
    anime_genres: list[str] = Field(default_factory=list)
    anime_studios: list[str] = Field(default_factory=list)
    actors: list[str] = Field(default_factory=list)
    directors: list[str] = Field(default_factory=list)

    @field_validator(
        "countries", "anime_genres", "anime_studios", "actors", "directors", mode="before"
    )
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class EnrichmentRecord(BaseModel):
    """First Kodik search result for a catalog id."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str | None = None
    type: str | None = None
    link: str | None = None
    title: str | None = None
    shikimori_id: str | None = None
    last_season: int | None = None
    material_data: MaterialData = Field(default_factory=MaterialData)

    @field_validator("material_data", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class Checkpoint(BaseModel):
    """Records collected so far by the range scan.

    Serialized with the ``all_animes``/``timestamp`` keys of the original temp file.
    """

    model_config = ConfigDict(populate_by_name=True)

    collected: list[CatalogRecord] = Field(default_factory=list, alias="all_animes")
    saved_at: datetime | None = Field(default=None, alias="timestamp")

    def collected_ids(self) -> set[str]:
        return {rec.id for rec in self.collected}


class RelatedSummary(BaseModel):
    id: str
    title: str
    poster_url: str | None = None


class NameItem(BaseModel):
    name: str


class SiteLink(BaseModel):
    site: str
    url: str


class UrlItem(BaseModel):
    url: str


class AssociatedItem(BaseModel):
    id: str
    title: str
    poster: str


class OutboundRecord(BaseModel):
    """Destination store schema. Only ``score`` may be null."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    licensenameru: bool = False
    name: str = ""
    russian: str = ""
    japanese: str = ""
    quality: str = "HD"
    poster: str = ""
    kind: str = ""
    score: str | None = None
    status: str = ""
    episodes: int = 0
    duration: int = 0
    season: str = ""
    released: str = ""
    minimal_age: str = "16"
    countries: str = "Япония"
    description: str = "Нет описания"
    actors: list[NameItem] = Field(default_factory=list)
    studios: list[NameItem] = Field(default_factory=list)
    directors: list[NameItem] = Field(default_factory=list)
    genres: list[NameItem] = Field(default_factory=list)
    externallinks: list[SiteLink] = Field(default_factory=list)
    screenshots: list[UrlItem] = Field(default_factory=list)
    opening: list[dict[str, Any]] = Field(default_factory=list)
    trailer: list[dict[str, Any]] = Field(default_factory=list)
    associated: list[AssociatedItem] = Field(default_factory=list)
    episode_list: list[dict[str, Any]] = Field(default_factory=list, alias="list")
    alternative_player: str = ""
    fandubbers: str = ""
