"""
DOM card fallback - structural scrape of listing cards from rendered HTML
"""

import logging
import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from .url_normalizer import DEFAULT_SITE_ORIGIN, normalize_url

logger = logging.getLogger(__name__)

PROFILE_HREF = re.compile(r'^(?:https?://[^/]+)?/(?:r/[^/?#]+|restaurant/profile/\d+)', re.IGNORECASE)
RATING_LABEL = re.compile(r'(\d+(?:\.\d+)?)\s*(?:out of 5\s*)?stars?', re.IGNORECASE)
REVIEW_COUNT_TEXT = [
    re.compile(r'\(([\d,]+)\)'),
    re.compile(r'([\d,]+)\s+reviews?', re.IGNORECASE),
]


def _card_for(anchor):
    card = anchor.find_parent(['li', 'article'])
    if card is not None:
        return card
    parent = anchor
    for _ in range(3):
        if parent.parent is None:
            break
        parent = parent.parent
        if parent.find('img') is not None:
            return parent
    return anchor.parent or anchor


def _card_name(card, anchor) -> Optional[str]:
    heading = card.find(['h2', 'h3', 'h4'])
    for candidate in (
        heading.get_text(' ', strip=True) if heading else None,
        anchor.get_text(' ', strip=True),
        anchor.get('aria-label'),
    ):
        if candidate:
            return candidate
    return None


def _card_rating(card) -> Optional[float]:
    for el in card.find_all(attrs={'aria-label': True}):
        match = RATING_LABEL.search(el['aria-label'])
        if match:
            return float(match.group(1))
    return None


def _card_review_count(card) -> Optional[int]:
    text = card.get_text(' ', strip=True)
    for pattern in REVIEW_COUNT_TEXT:
        match = pattern.search(text)
        if match:
            return int(match.group(1).replace(',', ''))
    return None


def _card_image(card) -> Optional[str]:
    img = card.find('img')
    if img is None:
        return None
    return img.get('src') or img.get('data-src')


def extract_dom_cards(html: str, site_origin: str = DEFAULT_SITE_ORIGIN) -> List[Dict[str, Any]]:
    """
    Scrape one fragment per linked listing card

    Returns:
        Fragments shaped like ``{"name", "url", "rating", "reviewCount", "imageUrl"}``
        with missing fields omitted
    """
    if not html:
        return []

    soup = BeautifulSoup(html, 'html.parser')
    cards: List[Dict[str, Any]] = []
    seen_urls = set()

    for anchor in soup.find_all('a', href=True):
        href = anchor['href']
        if not PROFILE_HREF.match(href):
            continue

        url = normalize_url(href.split('?', 1)[0], site_origin)
        if not url or url in seen_urls:
            continue

        card = _card_for(anchor)
        name = _card_name(card, anchor)
        if not name:
            continue
        seen_urls.add(url)

        fragment = {
            'name': name,
            'url': url,
            'rating': _card_rating(card),
            'reviewCount': _card_review_count(card),
            'imageUrl': _card_image(card),
        }
        cards.append({k: v for k, v in fragment.items() if v is not None})

    logger.debug(f" Scraped {len(cards)} DOM cards")
    return cards
