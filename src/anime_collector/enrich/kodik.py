from typing import Any

import httpx
from pydantic import ValidationError

from ..core.models import EnrichmentRecord
from ..utils.http import FetchOutcome, classify_status_code, response_excerpt
from ..utils.log import get_logger

log = get_logger(__name__)


class EnrichmentClient:
    """Kodik search API lookup by Shikimori id.

    Returns the first search result only; no ranking is attempted.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str,
        api_url: str = "https://kodikapi.com",
        timeout: float = 30.0,
    ) -> None:
        self.client = client
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    async def fetch_outcome(self, catalog_id: int | str) -> FetchOutcome[EnrichmentRecord]:
        shikimori_id = str(catalog_id)
        if not self.token:
            log.warning("kodik_no_token", shikimori_id=shikimori_id)
            return FetchOutcome("not_found", detail={"error": "no_token"})

        url = f"{self.api_url}/search"
        params = {
            "token": self.token,
            "shikimori_id": shikimori_id,
            "with_episodes": "true",
            "with_material_data": "true",
        }

        try:
            resp = await self.client.get(url, params=params, timeout=self.timeout)
        except httpx.TimeoutException as e:
            log.error("kodik_timeout", shikimori_id=shikimori_id, error=str(e))
            return FetchOutcome("timeout", detail={"error": str(e)})
        except httpx.HTTPError as e:
            log.error("kodik_http_error", shikimori_id=shikimori_id, error=str(e))
            return FetchOutcome("transport", detail={"error": str(e)})

        if not resp.is_success:
            log.warning(
                "kodik_non_2xx",
                shikimori_id=shikimori_id,
                status=resp.status_code,
                response_text=response_excerpt(resp),
            )
            return FetchOutcome(classify_status_code(resp.status_code), detail={"status_code": resp.status_code})

        try:
            data: dict[str, Any] = resp.json()
            total = int(data.get("total") or 0)
            results = data.get("results") or []
        except (ValueError, TypeError, AttributeError) as e:
            log.error("kodik_json_parse_error", shikimori_id=shikimori_id, error=str(e))
            return FetchOutcome("malformed", detail={"error": str(e)})

        if total <= 0 or not results:
            log.info("kodik_no_match", shikimori_id=shikimori_id)
            return FetchOutcome("not_found")

        if not isinstance(results, list) or not isinstance(results[0], dict):
            shape = type(results if not isinstance(results, list) else results[0]).__name__
            log.error("kodik_unexpected_payload", shikimori_id=shikimori_id, results_type=shape)
            return FetchOutcome("malformed", detail={"results_type": shape})

        try:
            record = EnrichmentRecord.model_validate(results[0])
        except ValidationError as e:
            log.error("kodik_result_invalid", shikimori_id=shikimori_id, error=str(e))
            return FetchOutcome("malformed", detail={"error": str(e)})

        log.info(
            "kodik_fetched",
            shikimori_id=shikimori_id,
            total=total,
            has_link=bool(record.link),
            genres=len(record.material_data.anime_genres),
        )
        return FetchOutcome("ok", value=record)

    async def fetch_by_catalog_id(self, catalog_id: int | str) -> EnrichmentRecord | None:
        """Return the first Kodik match for the catalog id, or ``None``."""
        outcome = await self.fetch_outcome(catalog_id)
        return outcome.value if outcome.ok else None
