import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from syncroom.errors import CatalogError
from syncroom.models.room import Song

logger = logging.getLogger(__name__)


class CatalogClient:
    """
    Song lookups against the third-party catalog search API.

    Used by the HTTP layer only; room operations never wait on the catalog.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def search(self, query: str, limit: int = 50, page: int = 1) -> List[Song]:
        try:
            response = await self._client.get(
                self.base_url,
                params={"query": query, "page": page, "limit": limit},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Catalog search error for '{query}': {e}")
            raise CatalogError(str(e)) from e

        payload = data.get("data") if isinstance(data, dict) else None
        results = payload.get("results") if isinstance(payload, dict) else None
        songs = []
        for entry in results or []:
            try:
                songs.append(Song.model_validate(entry))
            except ValidationError:
                # Entries without a playable stream are of no use to a room
                logger.debug(f"Skipping catalog entry {entry.get('id') if isinstance(entry, dict) else entry!r}")
        return songs

    async def aclose(self) -> None:
        await self._client.aclose()
