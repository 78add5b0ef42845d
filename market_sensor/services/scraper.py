import logging

from market_sensor.exceptions import ScrapeError
from market_sensor.models.schemas import Snapshot, new_id, utcnow
from market_sensor.services.fetcher import Fetcher
from market_sensor.services.html_utils import (
    soupify,
    extract_hero_text,
    extract_subheads,
    extract_pricing_blocks,
)

logger = logging.getLogger(__name__)

MAX_SUBHEADS = 10
MAX_PRICING_BLOCKS = 5


def parse_snapshot(html: str, url: str, name: str) -> Snapshot:
    try:
        soup = soupify(html)
    except Exception as e:
        raise ScrapeError(f"Could not parse {url}: {e}") from e
    return Snapshot(
        id=new_id("snapshot"),
        competitor_url=url,
        competitor_name=name,
        captured_at=utcnow(),
        hero_text=extract_hero_text(soup),
        subheads=extract_subheads(soup, MAX_SUBHEADS),
        pricing_blocks=extract_pricing_blocks(soup, MAX_PRICING_BLOCKS),
        raw_html=html,
    )


async def scrape_competitor_page(fetcher: Fetcher, url: str, name: str) -> Snapshot:
    html = await fetcher.get_html(url)
    snapshot = parse_snapshot(html, url, name)
    logger.info("Captured %s: hero=%r subheads=%d pricing=%d", url, snapshot.hero_text[:40],
                len(snapshot.subheads), len(snapshot.pricing_blocks))
    return snapshot
