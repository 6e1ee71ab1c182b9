"""PlanIt planning-application search (precedent source).

See https://www.planit.org.uk/api/ for the endpoint reference.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from planning_balance.cache import ICache, make_key
from planning_balance.core.config import PrecedentConfig
from planning_balance.core.types import SourceRecord
from planning_balance.exceptions import SourceFetchError

log = logging.getLogger(__name__)

APPLICATIONS_PATH = "/api/applics/json"


class PlanItClient:
    """``IPrecedentSearch`` over the public PlanIt JSON API.

    Responses are cached in the injected cache (not module state) so
    separate engines never share results.
    """

    def __init__(
        self,
        config: PrecedentConfig,
        *,
        cache: ICache | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._cache = cache
        self._http = http
        self._owns_http = http is None

    async def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=self._config.timeout,
            )
        return self._http

    async def _fetch(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        clean = {k: v for k, v in params.items() if v not in (None, "")}
        key = make_key("planit", path, clean)
        if self._cache is not None:
            cached = await self._cache.get(key)
            if cached is not None:
                return cached

        http = await self._client()
        try:
            resp = await http.get(path, params=clean)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise SourceFetchError(
                f"PlanIt request failed {e.response.status_code}", source="planit"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise SourceFetchError(f"PlanIt request failed: {e}", source="planit") from e

        if self._cache is not None:
            await self._cache.put(key, data, ttl_seconds=self._config.cache_ttl_seconds)
        return data

    async def search_applications(
        self, search: str, *, page_size: int = 25, page: int = 1, **params: Any
    ) -> list[SourceRecord]:
        data = await self._fetch(
            APPLICATIONS_PATH, {"search": search, "pg_sz": page_size, "page": page, **params}
        )
        records = data.get("records") if isinstance(data, dict) else None
        return list(records or [])

    async def search(self, query: str, limit: int = 20) -> list[SourceRecord]:
        return await self.search_applications(query, page_size=limit)

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None
