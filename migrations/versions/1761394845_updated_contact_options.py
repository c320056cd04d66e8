"""rename contact_options.addressed to is_featured"""

revision = '1761394845'
description = 'rename contact_options.addressed to is_featured'


def upgrade(op):
    op.rename_field('contact_options', 'addressed', 'is_featured')


def downgrade(op):
    op.rename_field('contact_options', 'is_featured', 'addressed')
