"""
API Template Extractor & Scorer

Turns an observed RPC call (GraphQL-style: arguments nested under
``variables``) into a replayable template, and ranks templates by how
likely they are to be the call that returns the search results.
"""

import json
import logging
import re
from typing import Any, Dict, Optional, Set
from urllib.parse import parse_qsl, urlparse

from .models import ApiTemplate
from .weights import DECOY_PATTERN, SEARCH_PATTERN, TEMPLATE_WEIGHTS

logger = logging.getLogger(__name__)

# Only calls through the site's RPC endpoint are eligible
RPC_PATH_PATTERN = re.compile(r'/(?:dapi/fe/gql|graphql|gql)(?:/|$)', re.IGNORECASE)

# Query-string keys some RPC gateways use instead of a JSON body
OPERATION_QUERY_KEYS = ('opname', 'operationName')

LOCATION_TERMS = ('term', 'location', 'latitude', 'longitude', 'metro', 'geo', 'region')
DATE_PARTY_TERMS = ('date', 'time', 'partysize', 'covers', 'party')

# Request headers that must not be copied onto a replayed call
NON_REPLAYABLE_HEADERS = {
    'cookie', 'content-length', 'host', 'accept-encoding', 'connection',
    'transfer-encoding', 'upgrade', 'te', 'trailer', 'keep-alive',
}


def _decode_json(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode('utf-8', errors='replace')
    if isinstance(value, str) and value.strip():
        try:
            return json.loads(value)
        except ValueError:
            return None
    return None


def capture_template(
    url: str,
    method: str = 'GET',
    request_body: Any = None,
    headers: Optional[Dict[str, str]] = None
) -> Optional[ApiTemplate]:
    """
    Parse an observed call into an ApiTemplate

    Args:
        url: Full request URL
        method: HTTP method
        request_body: Raw (string/bytes) or already decoded request body
        headers: Request headers as sent by the browser

    Returns:
        ApiTemplate, or None when the call is not an RPC-style call
    """
    parsed = urlparse(url)
    if not parsed.scheme or not RPC_PATH_PATTERN.search(parsed.path):
        return None

    query_params = dict(parse_qsl(parsed.query, keep_blank_values=True))

    body = _decode_json(request_body)
    batched = isinstance(body, list)
    if batched:
        # batched operations: the first one drives the page
        body = next((op for op in body if isinstance(op, dict)), None)
    if not isinstance(body, dict):
        body = None

    variables = body.get('variables') if body else None
    if not isinstance(variables, dict):
        variables = _decode_json(query_params.get('variables'))
        if not isinstance(variables, dict):
            variables = None

    extensions = body.get('extensions') if body else None
    if not isinstance(extensions, dict):
        extensions = _decode_json(query_params.get('extensions'))
        if not isinstance(extensions, dict):
            extensions = None

    operation_name = body.get('operationName') if body else None
    if not isinstance(operation_name, str) or not operation_name:
        operation_name = next(
            (query_params[k] for k in OPERATION_QUERY_KEYS if query_params.get(k)),
            None,
        )

    replay_headers = {
        k: v for k, v in (headers or {}).items()
        if not k.startswith(':') and k.lower() not in NON_REPLAYABLE_HEADERS
    }

    return ApiTemplate(
        base_url=f"{parsed.scheme}://{parsed.netloc}{parsed.path}",
        method=(method or 'GET').upper(),
        query_params=query_params,
        variables=variables,
        extensions=extensions,
        operation_name=operation_name,
        body=body,
        headers=replay_headers,
        batched=batched and body is not None,
    )


def _has_key_term(obj: Any, terms, depth: int = 0) -> bool:
    if depth > 6:
        return False
    if isinstance(obj, dict):
        for key, value in obj.items():
            key_lower = str(key).lower()
            if any(term in key_lower for term in terms):
                return True
            if _has_key_term(value, terms, depth + 1):
                return True
    elif isinstance(obj, list):
        return any(_has_key_term(item, terms, depth + 1) for item in obj)
    return False


def score_template(template: ApiTemplate, extracted_count: int, detail_count: int) -> float:
    """
    Likelihood that a template is the listings query

    Rewards calls that returned listings, search-like operation names,
    POST calls and search parameters inside ``variables``; heavily
    penalizes home/recommendation modules fired on the same page.
    """
    w = TEMPLATE_WEIGHTS
    score = extracted_count * w['per_extracted_record'] + detail_count * w['per_detail_item']

    operation = template.operation_name or ''
    if operation and DECOY_PATTERN.search(operation):
        score += w['decoy_operation']
    elif operation and SEARCH_PATTERN.search(operation):
        score += w['search_operation']

    if template.method == 'POST':
        score += w['post_method']

    if template.variables:
        if _has_key_term(template.variables, LOCATION_TERMS):
            score += w['location_variables']
        if _has_key_term(template.variables, DATE_PARTY_TERMS):
            score += w['date_party_variables']

    return float(score)


class TemplateSlot:
    """
    Holds the best template seen during one query

    A template replaces the current one only when it scores strictly
    higher. Each distinct call shape is considered once.
    """

    def __init__(self):
        self.template: Optional[ApiTemplate] = None
        self.score: float = 0.0
        self._shapes: Set[str] = set()

    @property
    def has_template(self) -> bool:
        return self.template is not None and self.score > 0

    def offer(self, template: ApiTemplate, score: float) -> bool:
        if score > self.score:
            logger.info(f" API template retained: {template.operation_name or template.base_url} (score {score:.0f})")
            self.template = template
            self.score = score
            return True
        logger.debug(f" API template ignored: {template.operation_name or template.base_url} (score {score:.0f})")
        return False

    def consider(self, template: ApiTemplate, extracted_count: int, detail_count: int) -> bool:
        """Score a newly captured template and offer it, once per call shape"""
        if template.shape_key in self._shapes:
            return False
        self._shapes.add(template.shape_key)
        return self.offer(template, score_template(template, extracted_count, detail_count))

    def clear(self) -> None:
        self.template = None
        self.score = 0.0
        self._shapes.clear()
