from collections.abc import Callable

import httpx
import pytest

from anime_collector.core.config import ServiceSettings


@pytest.fixture
def settings() -> ServiceSettings:
    return ServiceSettings(
        catalog_api_url="https://catalog.test/api/graphql",
        catalog_site_url="https://shikimori.one",
        kodik_api_url="https://kodik.test",
        kodik_token="secret",
        destination_api_url="https://store.test/db/anime",
        asset_base_url="https://assets.test/bucket",
        catalog_rate_limit=0,
    )


@pytest.fixture
def make_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory
