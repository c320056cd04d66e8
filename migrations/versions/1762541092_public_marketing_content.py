"""open list/view rules on marketing collections"""

revision = '1762541092'
description = 'public read access for marketing page collections'

COLLECTIONS = (
    'cta_cards',
    'employer_stats',
    'faq_topics',
    'leadership',
    'partners',
    'security_features',
    'values',
)


def upgrade(op):
    for collection in COLLECTIONS:
        op.set_rules(collection, listRule="", viewRule="")


def downgrade(op):
    for collection in COLLECTIONS:
        op.set_rules(collection, listRule=None, viewRule=None)
