import copy
import json
import textwrap

import pytest

from finwage.services.collection_migrations import (
    MigrationError,
    MigrationOps,
    MigrationRunner,
    load_scripts,
)
from integrations.pocketbase.client import SourceUnavailableError

ICON_COLLECTIONS = (
    'values', 'process_steps', 'features', 'employee_benefits',
    'cta_cards', 'compliance_items', 'category',
)
RULE_COLLECTIONS = (
    'company_milestones', 'status', 'employer_stats', 'faq_topics',
    'leadership', 'partners', 'security_features',
)


def _field(field_id, name):
    return {'id': field_id, 'name': name, 'type': 'text'}


def _schema():
    collections = {
        'contact_options': {'fields': [_field('cont_featured', 'addressed'), _field('cont_icon', 'icon')]},
        'faq_items': {'fields': [_field(f'fi{i}', f'f{i}') for i in range(6)]},
        'faqs': {'fields': [_field(f'fq{i}', f'q{i}') for i in range(6)] + [_field('cgmtnwhi', 'category_text')]},
    }
    for name in ICON_COLLECTIONS:
        collections[name] = {'fields': [_field(f'{name}_icon', 'icon')]}
    for name in RULE_COLLECTIONS:
        collections.setdefault(name, {'fields': []})
    return collections


def _names(collection):
    return [f['name'] for f in collection['fields']]


def _write_version(directory, filename, body):
    (directory / filename).write_text(textwrap.dedent(body))


@pytest.fixture
def versions_dir(tmp_path):
    directory = tmp_path / 'versions'
    directory.mkdir()
    _write_version(directory, '20_second.py', '''
        revision = '20'
        description = 'rename title'

        def upgrade(op):
            op.rename_field('posts', 'title', 'headline')

        def downgrade(op):
            op.rename_field('posts', 'headline', 'title')
    ''')
    _write_version(directory, '3_first.py', '''
        revision = '3'
        description = 'open posts'

        def upgrade(op):
            op.set_rules('posts', listRule='', viewRule='')

        def downgrade(op):
            op.set_rules('posts', listRule=None, viewRule=None)
    ''')
    (directory / 'README.txt').write_text('not a migration')
    return directory


@pytest.fixture
def posts_pb(make_pb):
    return make_pb(collections={'posts': {'fields': [_field('p1', 'title')]}})


def test_add_field_inserts_at_index_and_replaces_by_id(make_pb):
    pb = make_pb(collections={'faq_items': {'fields': [_field('a', 'a'), _field('b', 'b')]}})
    op = MigrationOps(pb)

    op.add_field('faq_items', _field('c', 'c'), index=1)
    assert _names(pb.collections['faq_items']) == ['a', 'c', 'b']

    op.add_field('faq_items', {'id': 'c', 'name': 'renamed'})
    assert _names(pb.collections['faq_items']) == ['a', 'renamed', 'b']

    op.add_field('faq_items', _field('d', 'd'), index=99)
    assert _names(pb.collections['faq_items'])[-1] == 'd'


def test_remove_missing_field_fails(make_pb):
    pb = make_pb(collections={'faqs': {'fields': [_field('a', 'a')]}})
    with pytest.raises(MigrationError):
        MigrationOps(pb).remove_field('faqs', 'missing')
    assert pb.count('update_collection') == 0


def test_failed_removal_is_not_recorded_as_applied(make_pb, tmp_path):
    versions = tmp_path / 'versions'
    versions.mkdir()
    _write_version(versions, '1_drop_legacy.py', '''
        revision = '1'
        description = 'drop legacy field'

        def upgrade(op):
            op.remove_field('faqs', 'legacy')

        def downgrade(op):
            op.add_field('faqs', {'id': 'legacy', 'name': 'legacy'})
    ''')
    pb = make_pb(collections={'faqs': {'fields': [_field('a', 'a')]}})
    runner = MigrationRunner(pb, str(tmp_path / 'applied.json'), str(versions))

    with pytest.raises(MigrationError):
        runner.upgrade()
    assert runner.applied() == []
    assert runner.downgrade() == []
    assert _names(pb.collections['faqs']) == ['a']


def test_rename_field_is_idempotent_and_rejects_unknown_fields(make_pb):
    pb = make_pb(collections={'values': {'fields': [_field('v', 'icon')]}})
    op = MigrationOps(pb)

    op.rename_field('values', 'icon', 'icon_svg')
    assert _names(pb.collections['values']) == ['icon_svg']
    assert op.rename_field('values', 'icon', 'icon_svg') == {}

    with pytest.raises(MigrationError):
        op.rename_field('values', 'nope', 'other')


def test_set_rules_only_sends_given_rules(make_pb):
    pb = make_pb(collections={'partners': {}})
    MigrationOps(pb).set_rules('partners', listRule='', viewRule=None)

    assert pb.calls[-1] == ('update_collection', 'partners', {'listRule': '', 'viewRule': None})
    with pytest.raises(MigrationError):
        MigrationOps(pb).set_rules('partners')


def test_scripts_load_in_numeric_order(versions_dir):
    assert [s.revision for s in load_scripts(str(versions_dir))] == ['3', '20']


def test_upgrade_status_and_downgrade(posts_pb, versions_dir, tmp_path):
    state_file = str(tmp_path / 'state' / 'applied.json')
    runner = MigrationRunner(posts_pb, state_file, str(versions_dir))

    assert [s['applied'] for s in runner.status()] == [False, False]
    assert runner.upgrade(target='3') == ['3']
    assert runner.upgrade() == ['20']
    assert runner.upgrade() == []

    with open(state_file, encoding='utf-8') as fh:
        assert json.load(fh) == {'applied': ['3', '20']}
    assert posts_pb.collections['posts']['listRule'] == ''
    assert _names(posts_pb.collections['posts']) == ['headline']

    assert runner.downgrade() == ['20']
    assert _names(posts_pb.collections['posts']) == ['title']
    assert runner.applied() == ['3']
    assert runner.downgrade(steps=5) == ['3']
    assert posts_pb.collections['posts']['listRule'] is None


def test_upgrade_unknown_target(posts_pb, versions_dir, tmp_path):
    runner = MigrationRunner(posts_pb, str(tmp_path / 'applied.json'), str(versions_dir))
    with pytest.raises(MigrationError):
        runner.upgrade(target='999')


def test_backend_failure_stops_upgrade_and_keeps_state(posts_pb, versions_dir, tmp_path, monkeypatch):
    runner = MigrationRunner(posts_pb, str(tmp_path / 'applied.json'), str(versions_dir))

    def down(*a, **k):
        raise SourceUnavailableError('down', 503, 'posts')

    monkeypatch.setattr(posts_pb, 'get_collection', down)
    with pytest.raises(MigrationError):
        runner.upgrade()
    assert runner.applied() == ['3']


def test_shipped_migrations_round_trip(make_pb, tmp_path):
    pb = make_pb(collections=_schema())
    before = copy.deepcopy(pb.collections)
    runner = MigrationRunner(pb, str(tmp_path / 'applied.json'))

    applied = runner.upgrade()
    assert applied == sorted(applied, key=int)
    assert len(applied) == len(runner.scripts)

    assert _names(pb.collections['contact_options']) == ['is_featured', 'icon_svg']
    assert 'category_text' not in _names(pb.collections['faqs'])
    assert _names(pb.collections['faq_items'])[6] == 'category_text'
    assert pb.collections['status']['listRule'] == ''
    for name in ICON_COLLECTIONS:
        assert _names(pb.collections[name]) == ['icon_svg']

    assert runner.downgrade(steps=len(applied)) == list(reversed(applied))
    assert runner.applied() == []
    for name, collection in before.items():
        assert _names(pb.collections[name]) == _names(collection), name
