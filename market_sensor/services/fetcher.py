import httpx, logging, re
from typing import Optional
from market_sensor.config import settings
from market_sensor.exceptions import WebsiteNotFoundError

logger = logging.getLogger(__name__)

def normalize_url(url: str) -> str:
    url = url.strip()
    if not re.match(r"^https?://", url, re.I):
        url = "https://" + url
    return url.rstrip("/")

class Fetcher:
    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client or httpx.AsyncClient(
            headers={"User-Agent": settings.USER_AGENT},
            timeout=settings.TIMEOUT_SECS,
            follow_redirects=True
        )

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def get(self, url: str) -> Optional[httpx.Response]:
        for attempt in range(settings.RETRIES + 1):
            try:
                return await self.client.get(url)
            except httpx.RequestError as e:
                logger.warning("GET %s failed (attempt %d): %s", url, attempt + 1, e)
                continue
        return None

    async def get_html(self, url: str) -> str:
        """Page body, or WebsiteNotFoundError when unreachable or status >= 400."""
        r = await self.get(url)
        if r is None:
            raise WebsiteNotFoundError(f"Failed to fetch {url}: no response")
        if r.status_code >= 400:
            raise WebsiteNotFoundError(f"Failed to fetch {url}: {r.status_code} {r.reason_phrase}")
        return r.text
