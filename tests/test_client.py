import pytest
import requests

from integrations.pocketbase import client as client_module
from integrations.pocketbase.client import (
    PocketBaseClient,
    PocketBaseError,
    RecordNotFoundError,
    SourceUnavailableError,
    build_filter,
    quote_value,
    request_fingerprint,
)


class DummyResponse:
    def __init__(self, status_code, json_data=None, invalid_json=False):
        self.status_code = status_code
        self._json = json_data if json_data is not None else {}
        self._invalid_json = invalid_json
        self.headers = {}

    def json(self):
        if self._invalid_json:
            raise ValueError('not json')
        return self._json


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(client_module.time, 'sleep', lambda s: None)


def test_get_record_raises_not_found(monkeypatch):
    client = PocketBaseClient('http://pb')
    monkeypatch.setattr(client.session, 'request', lambda *a, **k: DummyResponse(404))
    with pytest.raises(RecordNotFoundError) as exc:
        client.get_record('blogs', 'abc')
    assert exc.value.status_code == 404
    assert exc.value.collection == 'blogs'


def test_server_error_is_source_unavailable_without_retry(monkeypatch):
    client = PocketBaseClient('http://pb')
    calls = []

    def req(*a, **k):
        calls.append(a)
        return DummyResponse(503)

    monkeypatch.setattr(client.session, 'request', req)
    with pytest.raises(SourceUnavailableError):
        client.list_records('blogs')
    assert len(calls) == 1


def test_retry_on_429_when_configured(monkeypatch):
    client = PocketBaseClient('http://pb', retries=2)
    responses = [DummyResponse(429), DummyResponse(200, {'items': [], 'page': 1})]

    def req(*a, **k):
        return responses.pop(0)

    monkeypatch.setattr(client.session, 'request', req)
    assert client.list_records('blogs') == {'items': [], 'page': 1}
    assert responses == []


def test_mutations_are_never_retried(monkeypatch):
    client = PocketBaseClient('http://pb', retries=3)
    calls = []

    def req(method, url, **kwargs):
        calls.append(method)
        return DummyResponse(500)

    monkeypatch.setattr(client.session, 'request', req)
    with pytest.raises(SourceUnavailableError):
        client.create_record('enquiries', {'name': 'x'})
    assert calls == ['POST']


def test_connection_error_maps_to_source_unavailable(monkeypatch):
    client = PocketBaseClient('http://pb')

    def req(*a, **k):
        raise requests.ConnectionError('refused')

    monkeypatch.setattr(client.session, 'request', req)
    with pytest.raises(SourceUnavailableError):
        client.health()


def test_client_error_carries_backend_message(monkeypatch):
    client = PocketBaseClient('http://pb')
    monkeypatch.setattr(
        client.session, 'request',
        lambda *a, **k: DummyResponse(400, {'message': 'Failed to create record.'}),
    )
    with pytest.raises(PocketBaseError) as exc:
        client.create_record('enquiries', {})
    assert not isinstance(exc.value, SourceUnavailableError)
    assert 'Failed to create record.' in str(exc.value)


def test_invalid_json_body_is_source_unavailable(monkeypatch):
    client = PocketBaseClient('http://pb')
    monkeypatch.setattr(client.session, 'request', lambda *a, **k: DummyResponse(200, invalid_json=True))
    with pytest.raises(SourceUnavailableError):
        client.list_records('blogs')


def test_list_records_builds_query(monkeypatch):
    client = PocketBaseClient('http://pb/')
    seen = {}

    def req(method, url, **kwargs):
        seen.update(method=method, url=url, params=kwargs.get('params'))
        return DummyResponse(200, {'items': []})

    monkeypatch.setattr(client.session, 'request', req)
    client.list_records('pricing_plans', page=2, per_page=5, filter='active = true', expand='features')
    assert seen['method'] == 'GET'
    assert seen['url'] == 'http://pb/api/collections/pricing_plans/records'
    assert seen['params'] == {
        'page': 2,
        'perPage': 5,
        'sort': '-created',
        'filter': 'active = true',
        'expand': 'features',
    }


def test_get_first_raises_when_empty(monkeypatch):
    client = PocketBaseClient('http://pb')
    monkeypatch.setattr(client.session, 'request', lambda *a, **k: DummyResponse(200, {'items': []}))
    with pytest.raises(RecordNotFoundError):
        client.get_first('blogs', 'slug = "missing"')


def test_authenticate_superuser_sets_token(monkeypatch):
    client = PocketBaseClient('http://pb')
    monkeypatch.setattr(client.session, 'request', lambda *a, **k: DummyResponse(200, {'token': 'tok'}))
    assert client.authenticate_superuser('admin@example.com', 'pw') == 'tok'
    assert client.session.headers['Authorization'] == 'tok'


def test_filter_helpers():
    assert build_filter(None, '') is None
    assert build_filter('a = 1') == 'a = 1'
    assert build_filter('a = 1', None, 'b = 2') == '(a = 1) && (b = 2)'
    assert quote_value('say "hi"') == '"say \\"hi\\""'


def test_request_fingerprint_ignores_param_order():
    first = request_fingerprint('list', 'blogs', {'page': 1, 'sort': '-created'})
    second = request_fingerprint('list', 'blogs', {'sort': '-created', 'page': 1})
    assert first == second
    assert first.startswith('fetch/')
    assert first != request_fingerprint('list', 'faqs', {'page': 1, 'sort': '-created'})
