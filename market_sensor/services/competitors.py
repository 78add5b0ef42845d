import tldextract

from market_sensor.services.fetcher import normalize_url

# bundled public-suffix snapshot only; no network fetch at lookup time
_extract = tldextract.TLDExtract(suffix_list_urls=())

def _domain(url: str) -> str:
    ext = _extract(url)
    return ".".join(x for x in [ext.domain, ext.suffix] if x)

def competitor_key(url: str) -> str:
    """Canonical form used as the competitor's identity."""
    return normalize_url(url)

def display_name_for(url: str) -> str:
    """'https://www.acme-analytics.io/pricing' -> 'Acme Analytics'."""
    base = _extract(url).domain or _domain(url) or url
    return " ".join(part.capitalize() for part in base.replace("_", "-").split("-") if part)
