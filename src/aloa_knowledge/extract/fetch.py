"""HTTP fetching of uploaded documents and client websites."""

import logging

import httpx

from aloa_knowledge.config import get_fetch_timeout
from aloa_knowledge.errors import SourceFetchError

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; AloaBot/1.0; +https://aloa.co)"


class ContentFetcher:
    """Fetches remote text over HTTP, sharing one client for its lifetime."""

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        """Initialize with an optional HTTP client."""
        self._http = http_client

    async def fetch_text(self, url: str) -> str:
        """GET ``url`` and return its body as text.

        Raises SourceFetchError on transport errors and non-2xx responses.
        """
        try:
            client = self._get_client()
            resp = await client.get(
                url,
                headers={"User-Agent": USER_AGENT},
                timeout=get_fetch_timeout(),
                follow_redirects=True,
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SourceFetchError(f"{url} returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise SourceFetchError(f"Failed to fetch {url}: {e}") from e
        logger.debug("Fetched %d bytes from %s", len(resp.content), url)
        return resp.text

    def _get_client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient()
        return self._http

    async def close(self) -> None:
        """Close the HTTP client if open."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None
