from unittest.mock import MagicMock

import pytest

from finwage.services.contact import ContactService, EnquiryValidationError, phone_digits
from finwage.services.content import ContentService
from finwage.services.revalidation import Revalidator
from integrations.pocketbase.client import SourceUnavailableError

VALID = {
    'name': 'Ada Lovelace',
    'email': 'Ada@Example.COM',
    'message': 'We would like a demo for 300 staff.',
    'interest': 'demo',
    'company': 'Analytical Engines',
    'phone': '+1 (555) 010-2030',
}


def _spy_revalidator(registry, tagged_store):
    revalidator = Revalidator(tagged_store, registry)
    revalidator.invalidate_by_tag = MagicMock(wraps=revalidator.invalidate_by_tag)
    revalidator.invalidate_by_path = MagicMock(wraps=revalidator.invalidate_by_path)
    return revalidator


def test_successful_enquiry_revalidates_contact_options_once(make_pb, registry, tagged_store):
    pb = make_pb({'contact_options': [{'id': 'c1', 'title': 'Sales'}]})
    options = ContentService('contact', registry, pb, tagged_store)
    revalidator = _spy_revalidator(registry, tagged_store)

    options.all()
    assert pb.count('list', 'contact_options') == 1

    result = ContactService(pb, revalidator).submit_enquiry(VALID)

    assert result.id
    assert result.revalidated is True
    revalidator.invalidate_by_tag.assert_called_once_with('contact-options')
    revalidator.invalidate_by_path.assert_called_once_with('/contact')

    options.all()
    assert pb.count('list', 'contact_options') == 2


def test_enquiry_payload(make_pb, registry, tagged_store):
    pb = make_pb()
    ContactService(pb, Revalidator(tagged_store, registry)).submit_enquiry(VALID)

    created = pb.records['enquiries'][0]
    assert created['email'] == 'ada@example.com'
    assert created['status'] == 'new'
    assert created['phone'] == 15550102030
    assert created['interest'] == 'demo'
    assert created['company'] == 'Analytical Engines'


def test_interest_defaults_to_contact(make_pb, registry, tagged_store):
    pb = make_pb()
    data = {k: v for k, v in VALID.items() if k not in ('interest', 'phone', 'company')}
    ContactService(pb, Revalidator(tagged_store, registry)).submit_enquiry(data)

    created = pb.records['enquiries'][0]
    assert created['interest'] == 'contact'
    assert 'phone' not in created
    assert 'company' not in created


@pytest.mark.parametrize('field, value', [
    ('name', 'A'),
    ('name', 'x' * 101),
    ('email', 'not-an-email'),
    ('message', 'too short'),
    ('message', 'x' * 1001),
    ('interest', 'partnership'),
    ('company', 'x' * 201),
    ('phone', 'call me maybe'),
])
def test_validation_failure_writes_and_invalidates_nothing(make_pb, registry, tagged_store, field, value):
    pb = make_pb()
    revalidator = _spy_revalidator(registry, tagged_store)

    with pytest.raises(EnquiryValidationError) as exc:
        ContactService(pb, revalidator).submit_enquiry(dict(VALID, **{field: value}))

    assert field in exc.value.errors
    assert pb.count('create') == 0
    revalidator.invalidate_by_tag.assert_not_called()
    revalidator.invalidate_by_path.assert_not_called()


def test_invalidation_failure_still_reports_success(make_pb, registry):
    pb = make_pb()
    store = MagicMock()
    store.invalidate_tag.side_effect = ConnectionError('redis down')
    store.invalidate_path.side_effect = ConnectionError('redis down')

    result = ContactService(pb, Revalidator(store, registry)).submit_enquiry(VALID)

    assert result.id == pb.records['enquiries'][0]['id']
    assert result.revalidated is False


def test_backend_failure_skips_invalidation(registry):
    client = MagicMock()
    client.create_record.side_effect = SourceUnavailableError('down', 503, 'enquiries')
    revalidator = MagicMock()

    with pytest.raises(SourceUnavailableError):
        ContactService(client, revalidator).submit_enquiry(VALID)
    revalidator.revalidate_domain.assert_not_called()


def test_phone_digits():
    assert phone_digits('+44 20 7946-0958') == 442079460958
    assert phone_digits('') is None
    assert phone_digits(None) is None
