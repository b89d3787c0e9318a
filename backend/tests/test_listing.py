import pytest
from werkzeug.exceptions import BadRequest
from app.utils.listing import parse_sort, page_bounds, list_etag, MAX_LIMIT
from tests.test_utils_seed import seed_login


def test_parse_sort_tokens(app_instance):
    with app_instance.test_request_context():
        assert parse_sort('-price, name,', {'price': 1, 'name': 2}) == [('price', True), ('name', False)]
        assert parse_sort(None, {'price': 1}) == []
        with pytest.raises(BadRequest):
            parse_sort('weight', {'price': 1})


def test_page_bounds_clamps(app_instance):
    with app_instance.test_request_context():
        assert page_bounds({}) == (50, 0)
        assert page_bounds({'limit': '5000', 'offset': '-3'}) == (MAX_LIMIT, 0)
        assert page_bounds({'limit': '0'}) == (1, 0)
        with pytest.raises(BadRequest):
            page_bounds({'offset': 'x'})


def test_etag_depends_on_page_window():
    assert list_etag([1, 2], 2, 50, 0) == list_etag([1, 2], 2, 50, 0)
    assert list_etag([1, 2], 2, 50, 0) != list_etag([1, 2], 2, 50, 1)


def test_if_modified_since_revalidation(client):
    h = seed_login(client, 'listing_user@example.com', 'Registrar')
    client.post('/catalog/paint-types', json={'name': 'Listing Pearl'}, headers=h)
    first = client.get('/catalog/paint-types?name=Listing%20Pearl', headers=h)
    assert first.status_code == 200
    last_modified = first.headers['Last-Modified']
    assert first.headers['X-Last-Modified-ISO'].endswith('Z')
    again = client.get('/catalog/paint-types?name=Listing%20Pearl', headers={**h, 'If-Modified-Since': last_modified})
    assert again.status_code == 304
    # a non-matching ETag takes precedence and forces a full response
    fresh = client.get(
        '/catalog/paint-types?name=Listing%20Pearl',
        headers={**h, 'If-Modified-Since': last_modified, 'If-None-Match': '"stale"'},
    )
    assert fresh.status_code == 200
    assert fresh.get_json()['data'][0]['name'] == 'Listing Pearl'
