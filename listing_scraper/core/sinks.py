"""
Output sinks - append-only persistence of normalized listings
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from .models import ListingRecord

logger = logging.getLogger(__name__)


class MemorySink:
    """Keeps rows in a list"""

    def __init__(self):
        self.rows: List[Dict[str, Any]] = []

    async def persist(self, record: ListingRecord) -> None:
        self.rows.append(record.to_dict())


class JsonlSink:
    """Appends one JSON object per line to a file"""

    def __init__(self, output_path: str):
        self.output_path = Path(output_path)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.count = 0

    async def persist(self, record: ListingRecord) -> None:
        with open(self.output_path, 'a', encoding='utf-8') as f:
            f.write(json.dumps(record.to_dict(), ensure_ascii=False) + '\n')
        self.count += 1


class ApifyDatasetSink:
    """Pushes rows to the Actor's default dataset"""

    def __init__(self, actor=None):
        if actor is None:
            from apify import Actor
            actor = Actor
        self.actor = actor
        self.count = 0

    async def persist(self, record: ListingRecord) -> None:
        await self.actor.push_data(record.to_dict())
        self.count += 1
