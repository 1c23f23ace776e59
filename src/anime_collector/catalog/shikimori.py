from collections.abc import Iterable
from typing import Any

import httpx
from pydantic import ValidationError

from ..core.models import CatalogRecord, RelatedSummary
from ..utils.http import FetchOutcome, RateLimiter, classify_error, classify_status_code, response_excerpt
from ..utils.log import get_logger

log = get_logger(__name__)

ANIMES_BY_IDS_QUERY = """
query ($ids: String!) {
  animes(ids: $ids) {
    id
    malId
    name
    russian
    licenseNameRu
    english
    japanese
    synonyms
    kind
    rating
    score
    status
    episodes
    episodesAired
    duration
    airedOn { year month day date }
    releasedOn { year month day date }
    url
    season
    poster { id originalUrl mainUrl }
    fansubbers
    fandubbers
    licensors
    createdAt
    updatedAt
    nextEpisodeAt
    isCensored
    genres { id name russian kind }
    studios { id name imageUrl }
    externalLinks { id kind url createdAt updatedAt }
    personRoles {
      id
      rolesRu
      rolesEn
      person { id name poster { id } }
    }
    characterRoles {
      id
      rolesRu
      rolesEn
      character { id name poster { id } }
    }
    related {
      id
      anime { id name }
      manga { id name }
      relationKind
      relationText
    }
    videos { id url name kind playerUrl imageUrl }
    screenshots { id originalUrl x166Url x332Url }
    scoresStats { score count }
    statusesStats { status count }
    description
    descriptionHtml
    descriptionSource
  }
}
"""


class CatalogClient:
    """Shikimori GraphQL catalog, one anime per request.

    Callers only ever see a record or ``None``; the reason for an absent
    result is logged from the internal :class:`FetchOutcome`.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_url: str = "https://shikimori.one/api/graphql",
        timeout: float = 30.0,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.client = client
        self.api_url = api_url
        self.timeout = timeout
        self.rate_limiter = rate_limiter

    async def fetch_outcome(self, anime_id: int | str) -> FetchOutcome[CatalogRecord]:
        """Fetch one anime and classify the result."""
        ids = str(anime_id)
        payload = {"query": ANIMES_BY_IDS_QUERY, "variables": {"ids": ids}}
        headers = {"Content-Type": "application/json", "Accept": "application/json"}

        if self.rate_limiter:
            await self.rate_limiter.acquire()

        try:
            resp = await self.client.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            log.error("catalog_timeout", anime_id=ids, error=str(e))
            return FetchOutcome("timeout", detail={"error": str(e)})
        except httpx.HTTPError as e:
            log.error("catalog_http_error", anime_id=ids, error=str(e), error_type=type(e).__name__)
            return FetchOutcome("transport", detail={"error": str(e)})

        if not resp.is_success:
            status = classify_status_code(resp.status_code)
            log.warning(
                "catalog_non_2xx",
                anime_id=ids,
                status=resp.status_code,
                outcome=status,
                response_text=response_excerpt(resp),
            )
            return FetchOutcome(status, detail={"status_code": resp.status_code})

        try:
            data: dict[str, Any] = resp.json()
        except ValueError as je:
            log.error("catalog_json_parse_error", anime_id=ids, error=str(je))
            return FetchOutcome("malformed", detail={"error": str(je), "response_text": response_excerpt(resp)})

        if not isinstance(data, dict):
            log.error("catalog_unexpected_payload", anime_id=ids, payload_type=type(data).__name__)
            return FetchOutcome("malformed", detail={"payload_type": type(data).__name__})

        if data.get("errors"):
            log.warning("catalog_api_error", anime_id=ids, errors=data["errors"])
            return FetchOutcome("api_error", detail={"errors": data["errors"]})

        body = data.get("data") or {}
        animes = (body.get("animes") or []) if isinstance(body, dict) else None
        if not isinstance(animes, list):
            shape = type(body.get("animes") if isinstance(body, dict) else body).__name__
            log.error("catalog_unexpected_payload", anime_id=ids, data_type=shape)
            return FetchOutcome("malformed", detail={"data_type": shape})
        if not animes:
            log.info("catalog_not_found", anime_id=ids)
            return FetchOutcome("not_found")
        if not isinstance(animes[0], dict):
            log.error("catalog_unexpected_payload", anime_id=ids, item_type=type(animes[0]).__name__)
            return FetchOutcome("malformed", detail={"item_type": type(animes[0]).__name__})

        try:
            record = CatalogRecord.model_validate(animes[0])
        except ValidationError as e:
            log.error("catalog_record_invalid", anime_id=ids, error=str(e))
            return FetchOutcome(classify_error(e), detail={"error": str(e)})

        log.info(
            "catalog_fetched",
            anime_id=ids,
            name=record.name,
            fandubbers=len(record.fandubbers),
            related=len(record.related),
        )
        return FetchOutcome("ok", value=record)

    async def fetch_by_id(self, anime_id: int | str) -> CatalogRecord | None:
        """Return the anime with this id, or ``None`` if it is missing or the call failed."""
        outcome = await self.fetch_outcome(anime_id)
        return outcome.value if outcome.ok else None

    async def fetch_related(self, ids: Iterable[int | str]) -> list[RelatedSummary]:
        """Resolve each unique id to a summary, dropping ids that cannot be fetched."""
        unique_ids: list[str] = []
        for rid in ids:
            key = str(rid)
            if key not in unique_ids:
                unique_ids.append(key)

        summaries: list[RelatedSummary] = []
        for rid in unique_ids:
            related = await self.fetch_by_id(rid)
            if related is None:
                log.debug("related_skipped", anime_id=rid)
                continue
            summaries.append(
                RelatedSummary(
                    id=related.id,
                    title=related.title,
                    poster_url=related.poster.original_url if related.poster else None,
                )
            )
        log.info("related_resolved", requested=len(unique_ids), resolved=len(summaries))
        return summaries
