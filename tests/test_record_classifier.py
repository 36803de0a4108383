from listing_scraper.core.record_classifier import normalize_name_key


def test_is_listing_requires_name_plus_url_or_metadata(classifier):
    assert classifier.is_listing({'name': 'Cafe One', 'profileLink': '/r/cafe-one'})
    assert classifier.is_listing({'name': 'Cafe One', 'starRating': 4.5})
    assert classifier.is_listing({'name': 'Cafe One', 'priceBand': '$$'})
    assert not classifier.is_listing({'name': 'Cafe One'})
    assert not classifier.is_listing({'profileLink': '/r/cafe-one', 'starRating': 4.5})
    assert not classifier.is_listing(['Cafe One'])


def test_is_detail_item_accepts_image_only_fragments(classifier):
    assert classifier.is_detail_item({'name': 'Cafe One', 'imageUrl': 'https://img.example.com/a.jpg'})
    assert not classifier.is_detail_item({'name': 'Cafe One', 'priceBand': '$$'})


def test_accessors_walk_rules_in_order(classifier):
    obj = {
        'restaurantName': 'Cafe One',
        'rid': 123,
        'urls': {'profileLink': {'link': 'https://www.opentable.com/r/cafe-one-chicago'}},
        'primaryPhoto': {'uri': 'https://resizer.otstatic.com/v2/photos/wide-medium/2/41234567.webp'},
        'statistics': {
            'reviews': {
                'ratings': {'overall': {'rating': 4.7}},
                'allTimeTextReviewCount': 1534,
            }
        },
        'priceBand': {'name': '$$$'},
        'primaryCuisine': {'name': 'Italian'},
        'neighborhood': {'name': 'River North'},
        'city': 'Chicago',
    }

    record = classifier.to_record(obj)

    assert record.name == 'Cafe One'
    assert record.identity == '123'
    assert record.url == 'https://www.opentable.com/r/cafe-one-chicago'
    assert record.image_url == 'https://resizer.otstatic.com/v2/photos/xlarge/2/41234567.jpg'
    assert record.rating == 4.7
    assert record.review_count == 1534
    assert record.price_tier == '$$$'
    assert record.cuisine == 'Italian'
    assert record.neighborhood == 'River North'
    assert record.city == 'Chicago'


def test_invalid_values_fall_through_to_later_rules(classifier):
    obj = {'name': '  ', 'title': 'Cafe One', 'starRating': -1, 'rating': '4.2', 'reviewCount': '1,234'}

    assert classifier.name(obj) == 'Cafe One'
    assert classifier.rating(obj) == 4.2
    assert classifier.review_count(obj) == 1234


def test_rating_rejects_booleans_and_non_numbers(classifier):
    assert classifier.rating({'rating': True}) is None
    assert classifier.rating({'rating': 'great'}) is None
    assert classifier.rating({'rating': {'value': 3.5}}) == 3.5


def test_slug_from_profile_link_ignores_numeric_paths(classifier):
    assert classifier.slug({'profileLink': '/r/cafe-one-chicago?corrid=abc'}) == 'cafe-one-chicago'
    assert classifier.slug({'profileLink': '/r/12345'}) is None


def test_unwrap_looks_one_level_into_wrapper_keys(classifier):
    inner = {'name': 'Cafe One', 'profileLink': '/r/cafe-one'}

    assert classifier.unwrap({'node': inner}) is inner
    assert classifier.unwrap({'node': {'node': inner}}) is None
    assert classifier.unwrap(inner) is inner


def test_booking_slots_are_copied_lists(classifier):
    slots = [{'time': '19:00'}, {'time': '19:30'}]
    record = classifier.to_record({'name': 'Cafe One', 'rating': 4, 'availabilitySlots': slots})

    assert record.booking_slots == slots
    assert record.booking_slots is not slots
    assert classifier.to_record({'name': 'Cafe One'}).booking_slots == []


def test_normalize_name_key():
    assert normalize_name_key('Joe’s Bar & Grill') == 'joe s bar and grill'
    assert normalize_name_key("Joe's Bar and Grill") == 'joe s bar and grill'
    assert normalize_name_key('---') is None
    assert normalize_name_key(None) is None
