import os
import re

os.environ.setdefault('LOG_TO_FILE', '0')
os.environ.setdefault('RATELIMIT_ENABLED', '0')
os.environ.setdefault('SECRET_KEY', 'test-secret')
os.environ.pop('REDIS_URL', None)
os.environ.pop('REVALIDATION_API_KEY', None)
os.environ.pop('POCKETBASE_WEBHOOK_SECRET', None)
os.environ.pop('CRON_SECRET', None)

import pytest
from flask import Flask
from flask_caching import Cache

from finwage.extensions.cache import TaggedCache
from finwage.services.cache_registry import build_default_registry
from integrations.pocketbase.client import RecordNotFoundError

QUOTED_CLAUSE = re.compile(r'(\w+) = "([^"]*)"')


class FakePocketBase:
    """In-memory stand-in for PocketBaseClient that records every call."""

    def __init__(self, records=None, collections=None):
        self.records = {name: [dict(r) for r in items] for name, items in (records or {}).items()}
        self.collections = collections or {}
        self.calls = []
        self._next_id = 1

    @staticmethod
    def _matches(record, filter):
        return all(str(record.get(field)) == value for field, value in QUOTED_CLAUSE.findall(filter or ''))

    def list_records(self, collection, *, page=1, per_page=20, sort='-created', filter=None, expand=None, fields=None):
        self.calls.append(('list', collection, filter))
        items = [r for r in self.records.get(collection, []) if self._matches(r, filter)]
        start = (page - 1) * per_page
        return {
            'page': page,
            'perPage': per_page,
            'totalItems': len(items),
            'totalPages': (len(items) + per_page - 1) // per_page,
            'items': [dict(r) for r in items[start:start + per_page]],
        }

    def get_record(self, collection, record_id, *, expand=None):
        self.calls.append(('get', collection, record_id))
        for record in self.records.get(collection, []):
            if record.get('id') == record_id:
                return dict(record)
        raise RecordNotFoundError('Record not found', 404, collection)

    def get_first(self, collection, filter, *, expand=None):
        self.calls.append(('first', collection, filter))
        for record in self.records.get(collection, []):
            if self._matches(record, filter):
                return dict(record)
        raise RecordNotFoundError('Record not found', 404, collection)

    def create_record(self, collection, payload):
        self.calls.append(('create', collection, payload))
        record = dict(payload, id=f'rec{self._next_id:012d}')
        self._next_id += 1
        self.records.setdefault(collection, []).append(record)
        return dict(record)

    def get_collection(self, id_or_name):
        self.calls.append(('get_collection', id_or_name))
        return self.collections[id_or_name]

    def update_collection(self, id_or_name, payload):
        self.calls.append(('update_collection', id_or_name, payload))
        self.collections[id_or_name].update(payload)
        return self.collections[id_or_name]

    def health(self):
        return {'code': 200, 'message': 'API is healthy.'}

    def count(self, kind, collection=None):
        return sum(1 for c in self.calls if c[0] == kind and (collection is None or c[1] == collection))


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def tagged_store():
    app = Flask(__name__)
    store = Cache(app, config={'CACHE_TYPE': 'SimpleCache', 'CACHE_DEFAULT_TIMEOUT': 300})
    return TaggedCache(store)


@pytest.fixture
def fake_pb():
    return FakePocketBase()


@pytest.fixture
def make_pb():
    return FakePocketBase
