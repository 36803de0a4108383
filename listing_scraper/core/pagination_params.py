"""
Pagination Parameter Inferencer

Finds page-number, offset and page-size fields in a captured template by
name and rewrites them to synthesize the request for page N.
"""

import copy
import json
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

from .errors import PaginationInferenceError
from .models import ApiTemplate, RequestDescriptor

logger = logging.getLogger(__name__)

PAGE_NUMBER_FIELDS = {'page', 'pagenumber', 'pageindex'}
OFFSET_FIELDS = {'offset', 'start', 'from', 'startindex'}
PAGE_SIZE_FIELDS = {'limit', 'pagesize', 'perpage', 'size', 'count'}

MAX_WALK_DEPTH = 12


def _field_kind(name: Any) -> Optional[str]:
    key = str(name).lower()
    if key in PAGE_NUMBER_FIELDS:
        return 'page'
    if key in OFFSET_FIELDS:
        return 'offset'
    if key in PAGE_SIZE_FIELDS:
        return 'size'
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_numeric_string(value: Any) -> bool:
    return isinstance(value, str) and value.strip().isdigit()


def _find_page_size(obj: Any, depth: int = 0) -> Optional[int]:
    if depth > MAX_WALK_DEPTH:
        return None
    if isinstance(obj, dict):
        for key, value in obj.items():
            if _field_kind(key) == 'size' and _is_number(value) and value > 0:
                return int(value)
        for value in obj.values():
            found = _find_page_size(value, depth + 1)
            if found:
                return found
    elif isinstance(obj, list):
        for item in obj:
            found = _find_page_size(item, depth + 1)
            if found:
                return found
    return None


def derive_page_size(
    variables: Optional[Dict[str, Any]],
    fallback: int,
    query_params: Optional[Dict[str, str]] = None
) -> int:
    """
    Page size declared by the template, or ``fallback`` if none is found

    ``variables`` is searched recursively first, then the flat query
    parameter map.
    """
    size = _find_page_size(variables) if variables else None
    if size:
        return size

    for key, value in (query_params or {}).items():
        if _field_kind(key) == 'size' and _is_numeric_string(value) and int(value) > 0:
            return int(value)

    return max(1, int(fallback))


def _target_value(kind: str, original: Any, page_number: int, page_size: int) -> int:
    if kind == 'page':
        # a template captured on page 1 with page=0 counts from zero
        return page_number - 1 if original in (0, '0') else page_number
    if kind == 'offset':
        return (page_number - 1) * page_size
    return page_size


def _rewrite_variables(obj: Any, page_number: int, page_size: int, mutated: List[Tuple[str, str]], depth: int = 0) -> None:
    if depth > MAX_WALK_DEPTH:
        return
    if isinstance(obj, dict):
        for key in list(obj.keys()):
            value = obj[key]
            kind = _field_kind(key)
            if kind and _is_number(value):
                obj[key] = _target_value(kind, value, page_number, page_size)
                mutated.append((kind, str(key)))
            elif isinstance(value, (dict, list)):
                _rewrite_variables(value, page_number, page_size, mutated, depth + 1)
    elif isinstance(obj, list):
        for item in obj:
            _rewrite_variables(item, page_number, page_size, mutated, depth + 1)


def _rewrite_query(params: Dict[str, str], page_number: int, page_size: int, mutated: List[Tuple[str, str]]) -> None:
    for key, value in list(params.items()):
        kind = _field_kind(key)
        if kind and _is_numeric_string(value):
            params[key] = str(_target_value(kind, value.strip(), page_number, page_size))
            mutated.append((kind, f"?{key}"))


def build_request_for_page(template: ApiTemplate, page_number: int, page_size: int) -> RequestDescriptor:
    """
    Synthesize the request for ``page_number`` from a template

    Page-number fields get the page, offset fields get
    ``(page - 1) * page_size`` and page-size fields get ``page_size``.

    Raises:
        PaginationInferenceError: page > 1 and no page-number or offset
            field could be rewritten, so the request would repeat the
            previous one.
    """
    variables = copy.deepcopy(template.variables) if template.variables is not None else None
    query = dict(template.query_params)
    mutated: List[Tuple[str, str]] = []

    if variables is not None:
        _rewrite_variables(variables, page_number, page_size, mutated)
    _rewrite_query(query, page_number, page_size, mutated)

    advancing = [name for kind, name in mutated if kind in ('page', 'offset')]
    if page_number > 1 and not advancing:
        raise PaginationInferenceError(
            f"No page-number or offset field found in {template.operation_name or template.base_url}",
            page=page_number,
        )

    logger.debug(f" Page {page_number}: rewrote {', '.join(name for _, name in mutated) or 'nothing'}")

    body = None
    if template.body is not None:
        body = copy.deepcopy(template.body)
        if variables is not None:
            body['variables'] = variables
    elif template.method != 'GET' and variables is not None:
        body = {
            k: v for k, v in (
                ('operationName', template.operation_name),
                ('variables', variables),
                ('extensions', template.extensions),
            ) if v is not None
        }

    if body is None and variables is not None and 'variables' in query:
        query['variables'] = json.dumps(variables, separators=(',', ':'))

    if body is not None and template.batched:
        # only the paging operation is replayed, as a one-element batch
        body = [body]

    url = template.base_url
    if query:
        url = f"{url}?{urlencode(query)}"

    headers = dict(template.headers)
    if body is not None and not any(k.lower() == 'content-type' for k in headers):
        headers['Content-Type'] = 'application/json'

    return RequestDescriptor(url=url, method=template.method, headers=headers, body=body, page=page_number)
