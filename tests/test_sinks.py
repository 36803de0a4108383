import asyncio
import json

from listing_scraper.core.models import ListingRecord
from listing_scraper.core.sinks import ApifyDatasetSink, JsonlSink, MemorySink

RECORD = ListingRecord(
    name='Cafe One',
    identity='101',
    slug='cafe-one-chicago',
    url='https://www.opentable.com/r/cafe-one-chicago',
    rating=4.5,
    review_count=1234,
    cuisine='Italian',
    price_tier='$$',
    city='Chicago',
    booking_slots=['19:00'],
)

OUTPUT_KEYS = [
    'name', 'cuisine', 'price_range', 'rating', 'reviews_count', 'neighborhood', 'city',
    'booking_slots', 'url', 'image_url', 'restaurant_id', 'slug',
]


class DummyActor:
    def __init__(self):
        self.pushed = []

    async def push_data(self, data):
        self.pushed.append(data)


def test_record_output_layout():
    row = RECORD.to_dict()

    assert list(row) == OUTPUT_KEYS
    assert row['price_range'] == '$$'
    assert row['reviews_count'] == 1234
    assert row['restaurant_id'] == '101'
    assert row['neighborhood'] is None


def test_memory_sink():
    sink = MemorySink()

    asyncio.run(sink.persist(RECORD))

    assert sink.rows == [RECORD.to_dict()]


def test_jsonl_sink_appends_lines(tmp_path):
    output = tmp_path / 'out' / 'listings.jsonl'
    sink = JsonlSink(str(output))

    async def run():
        await sink.persist(RECORD)
        await sink.persist(ListingRecord(name='Cafe Two', identity='102'))

    asyncio.run(run())

    lines = output.read_text(encoding='utf-8').splitlines()
    assert sink.count == 2
    assert json.loads(lines[0])['name'] == 'Cafe One'
    assert json.loads(lines[1])['restaurant_id'] == '102'


def test_apify_dataset_sink_pushes_rows():
    actor = DummyActor()
    sink = ApifyDatasetSink(actor)

    asyncio.run(sink.persist(RECORD))

    assert actor.pushed == [RECORD.to_dict()]
    assert sink.count == 1
