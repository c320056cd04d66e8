"""open list/view rules on company content collections"""

revision = '1761505648'
description = 'public read access for company_milestones, process_steps and status'

COLLECTIONS = ('company_milestones', 'process_steps', 'status')


def upgrade(op):
    for collection in COLLECTIONS:
        op.set_rules(collection, listRule="", viewRule="")


def downgrade(op):
    for collection in COLLECTIONS:
        op.set_rules(collection, listRule=None, viewRule=None)
