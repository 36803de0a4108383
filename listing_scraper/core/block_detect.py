"""
Interstitial / anti-bot page detection

Detection only logs; extraction is attempted regardless.
"""

import logging
from typing import Optional

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

INTERSTITIAL_INDICATORS = [
    'captcha',
    'please verify you are human',
    'verify you are not a robot',
    'access denied',
    'attention required',
    'unusual traffic',
    'suspicious activity',
    'automated access',
    'cf-browser-verification',
    'ddos-guard',
    'perimeterx',
    'px-captcha',
    'datadome',
    'incapsula',
    'ray id:',
]


def detect_interstitial(html: str, status_code: int = 200) -> Optional[str]:
    """
    Return the first anti-bot indicator found in the rendered page, or None

    Only visible text and the title are checked so script bundles that
    merely mention a vendor do not trigger.
    """
    if status_code in (403, 429):
        logger.warning(f" HTTP {status_code} - likely bot detection")
        return f"http {status_code}"

    if not html:
        return None

    soup = BeautifulSoup(html, 'html.parser')
    for tag in soup(['script', 'style', 'noscript']):
        tag.decompose()
    text = soup.get_text(' ', strip=True).lower()

    # challenge widgets are identified by their markup, not by text
    markup = ' '.join(
        ' '.join(el.get('class', [])) + ' ' + (el.get('id') or '')
        for el in soup.find_all(['div', 'iframe', 'form'])
    ).lower()

    for indicator in INTERSTITIAL_INDICATORS:
        if indicator in text or indicator in markup:
            logger.warning(f" Interstitial indicator found: '{indicator}'")
            return indicator

    return None
