from unittest.mock import MagicMock

import pytest

from finwage.services.content import ContentService, ContentServices, ListOptions, is_record_id
from integrations.pocketbase.client import RecordNotFoundError, SourceUnavailableError

BLOGS = [
    {'id': 'abcdefghij12345', 'slug': 'hello-world', 'title': 'Hello', 'category': 'cat000000000001'},
    {'id': 'abcdefghij67890', 'slug': 'second-post', 'title': 'Second', 'category': 'cat000000000002'},
]


def test_list_combines_default_and_caller_filters(registry, tagged_store):
    client = MagicMock()
    client.list_records.return_value = {'items': [], 'page': 1, 'perPage': 10, 'totalItems': 0, 'totalPages': 0}
    service = ContentService('blogs', registry, client, tagged_store)

    service.list(ListOptions(per_page=10, filter='featured = true', category='cat1'))

    client.list_records.assert_called_once_with(
        'blogs',
        page=1,
        per_page=10,
        sort='-published_date',
        filter='(published = true) && (featured = true) && (category = "cat1")',
        expand='author,category',
    )


def test_list_result_fields(make_pb, registry, tagged_store):
    pb = make_pb({'blogs': BLOGS})
    result = ContentService('blogs', registry, pb, tagged_store).list(ListOptions(per_page=1))

    assert len(result) == 1
    assert result.total_items == 2
    assert result.total_pages == 2
    assert result.page == 1


def test_reads_are_cached_per_query(make_pb, registry, tagged_store):
    pb = make_pb({'blogs': BLOGS})
    service = ContentService('blogs', registry, pb, tagged_store)

    service.list()
    service.list()
    service.list(ListOptions(page=2))
    assert pb.count('list', 'blogs') == 2


def test_get_by_slug(make_pb, registry, tagged_store):
    pb = make_pb({'blogs': BLOGS})
    post = ContentService('blogs', registry, pb, tagged_store).get_by_slug_or_id('second-post')

    assert post['title'] == 'Second'
    assert pb.count('first', 'blogs') == 1
    assert tagged_store.tagged_keys('blog-second-post')


def test_get_by_id_when_key_looks_like_record_id(make_pb, registry, tagged_store):
    pb = make_pb({'blogs': BLOGS})
    post = ContentService('blogs', registry, pb, tagged_store).get_by_slug_or_id('abcdefghij12345')

    assert post['slug'] == 'hello-world'
    assert pb.count('get', 'blogs') == 1


def test_domain_without_slug_fetches_by_id(make_pb, registry, tagged_store):
    pb = make_pb({'faqs': [{'id': 'x', 'question': 'Q'}]})
    assert ContentService('faqs', registry, pb, tagged_store).get_by_slug_or_id('x')['question'] == 'Q'
    assert pb.count('get', 'faqs') == 1


def test_missing_record_is_not_cached(make_pb, registry, tagged_store):
    pb = make_pb({'blogs': []})
    service = ContentService('blogs', registry, pb, tagged_store)

    for _ in range(2):
        with pytest.raises(RecordNotFoundError):
            service.get_by_slug_or_id('nope')
    assert pb.count('first', 'blogs') == 2


def test_source_unavailable_propagates(registry, tagged_store):
    client = MagicMock()
    client.list_records.side_effect = SourceUnavailableError('down', 503, 'faqs')

    with pytest.raises(SourceUnavailableError):
        ContentService('faqs', registry, client, tagged_store).all()


def test_by_category_uses_domain_category_field(registry, tagged_store):
    client = MagicMock()
    client.list_records.return_value = {'items': [{'id': 'j'}]}
    service = ContentService('jobs', registry, client, tagged_store)

    assert service.by_category('Engineering') == [{'id': 'j'}]
    assert client.list_records.call_args.kwargs['filter'] == '(status = "open") && (department = "Engineering")'
    assert tagged_store.tagged_keys('jobs-category-Engineering')


def test_featured_uses_domain_featured_filter(registry, tagged_store):
    client = MagicMock()
    client.list_records.return_value = {'items': []}
    ContentService('pricing', registry, client, tagged_store).featured(2)

    kwargs = client.list_records.call_args.kwargs
    assert kwargs['per_page'] == 2
    assert kwargs['filter'] == '(active = true) && (is_popular = true)'


def test_enquiries_are_never_cached(make_pb, registry, tagged_store):
    pb = make_pb({'enquiries': [{'id': 'e'}]})
    service = ContentService('enquiries', registry, pb, tagged_store)
    service.all()
    service.all()
    assert pb.count('list', 'enquiries') == 2


def test_content_services_expose_one_attribute_per_domain(make_pb, registry, tagged_store):
    services = ContentServices(registry, make_pb(), tagged_store)

    assert services.blogs.domain.name == 'blogs'
    assert services.contact_options.domain.tag == 'contact-options'
    assert services.faq_topics.collection == 'faq_topics'
    assert services['cta-cards'] is services.cta_cards
    assert len(list(services)) == len(registry.domains)


def test_is_record_id():
    assert is_record_id('abcdefghij12345')
    assert not is_record_id('hello-world')
    assert not is_record_id('ABCDEFGHIJ12345')
