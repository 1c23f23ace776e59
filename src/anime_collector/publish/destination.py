import httpx

from ..core.models import OutboundRecord
from ..utils.http import response_excerpt
from ..utils.log import get_logger

log = get_logger(__name__)


class Publisher:
    """POSTs outbound records to the destination store, one request per record."""

    def __init__(self, client: httpx.AsyncClient, api_url: str, timeout: float = 30.0) -> None:
        self.client = client
        self.api_url = api_url
        self.timeout = timeout

    async def publish(self, record: OutboundRecord) -> bool:
        """Return True only if the store answered with a 2xx status."""
        payload = record.model_dump(mode="json", by_alias=True)
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        try:
            resp = await self.client.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            log.error("publish_timeout", anime_id=record.id, url=self.api_url, error=str(e))
            return False
        except httpx.HTTPError as e:
            log.error("publish_http_error", anime_id=record.id, url=self.api_url, error=str(e))
            return False

        if not resp.is_success:
            log.error(
                "publish_rejected",
                anime_id=record.id,
                status=resp.status_code,
                response_text=response_excerpt(resp),
            )
            return False

        log.info("publish_succeeded", anime_id=record.id, status=resp.status_code)
        return True
