"""rename icon to icon_svg on every collection that stores inline SVG icons"""

revision = '1762642922'
description = 'rename icon to icon_svg'

COLLECTIONS = (
    'values',
    'process_steps',
    'features',
    'employee_benefits',
    'cta_cards',
    'contact_options',
    'compliance_items',
    'category',
)


def upgrade(op):
    for collection in COLLECTIONS:
        op.rename_field(collection, 'icon', 'icon_svg')


def downgrade(op):
    for collection in reversed(COLLECTIONS):
        op.rename_field(collection, 'icon_svg', 'icon')
