from seeds_content import CATEGORIES, FAQS, SEED_SETS, seed_collection, seed_content


def test_seed_content_creates_every_record(fake_pb):
    counts = seed_content(fake_pb)

    assert counts == {collection: len(records) for collection, _, records in SEED_SETS}
    assert [c['slug'] for c in fake_pb.records['category']] == [c['slug'] for c in CATEGORIES]


def test_seed_content_is_idempotent(fake_pb):
    seed_content(fake_pb)
    creates = fake_pb.count('create')

    assert seed_content(fake_pb) == {collection: 0 for collection, _, _ in SEED_SETS}
    assert fake_pb.count('create') == creates


def test_existing_records_are_skipped(make_pb):
    pb = make_pb({'faqs': [dict(FAQS[0], id='faq000000000001')]})

    assert seed_collection(pb, 'faqs', 'question', FAQS) == len(FAQS) - 1
    assert len(pb.records['faqs']) == len(FAQS)
