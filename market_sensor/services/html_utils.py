import re
from bs4 import BeautifulSoup
from typing import List

_WS = re.compile(r"\s+")
HERO_FALLBACK_SELECTORS = ['[class*="hero"] h1, [class*="hero"] h2', "h1, h2"]
PRICING_SELECTOR = '[class*="pricing"], [class*="price"], [id*="pricing"], [id*="price"]'
PRICE_PERIOD_HINTS = ("month", "year", "/mo")
MARKETING_TERMS = {
    "ai", "platform", "solution", "enterprise", "cloud", "real-time",
    "automation", "analytics", "security", "integration", "scalable",
    "fast", "simple", "powerful", "trusted", "innovative",
}

def soupify(html: str) -> BeautifulSoup:
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return soup

def text_of(el) -> str:
    return _WS.sub(" ", el.get_text(" ", strip=True)).strip()

def extract_hero_text(soup: BeautifulSoup) -> str:
    h1 = soup.find("h1")
    if h1 and text_of(h1):
        return text_of(h1)
    for selector in HERO_FALLBACK_SELECTORS:
        el = soup.select_one(selector)
        if el and text_of(el):
            return text_of(el)
    return ""

def extract_subheads(soup: BeautifulSoup, limit: int = 10) -> List[str]:
    subheads = []
    for el in soup.find_all(["h2", "h3"]):
        text = text_of(el)
        if 5 < len(text) < 200:
            subheads.append(text)
    return subheads[:limit]

def _looks_like_price(text: str) -> bool:
    lower = text.lower()
    return "$" in lower and any(hint in lower for hint in PRICE_PERIOD_HINTS)

def extract_pricing_blocks(soup: BeautifulSoup, limit: int = 5) -> List[str]:
    blocks = []
    for el in soup.select(PRICING_SELECTOR):
        text = text_of(el)
        if 10 < len(text) < 500:
            blocks.append(text)
    # catch price copy that is not marked up with a pricing class
    for el in soup.find_all(True):
        text = text_of(el)
        if 10 < len(text) < 200 and _looks_like_price(text) and text not in blocks:
            blocks.append(text)
    return blocks[:limit]

def extract_key_phrases(text: str) -> List[str]:
    """Capitalized runs, quoted phrases and short contexts around marketing terms.

    Standalone helper for ad-hoc copy inspection; the scan path does not call it.
    """
    phrases = re.findall(r"[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*", text)
    phrases += re.findall(r'"([^"]+)"', text)
    words = text.lower().split()
    for i, word in enumerate(words):
        if word in MARKETING_TERMS:
            phrases.append(" ".join(words[max(0, i - 3):i + 4]))
    return list(dict.fromkeys(phrases))