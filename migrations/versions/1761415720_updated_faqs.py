"""add faq_items.category_text"""

revision = '1761415720'
description = 'add faq_items.category_text'

CATEGORY_TEXT_FIELD = {
    "autogeneratePattern": "",
    "hidden": False,
    "id": "text2953895296",
    "max": 0,
    "min": 0,
    "name": "category_text",
    "pattern": "",
    "presentable": False,
    "primaryKey": False,
    "required": False,
    "system": False,
    "type": "text",
}


def upgrade(op):
    op.add_field('faq_items', CATEGORY_TEXT_FIELD, index=6)


def downgrade(op):
    op.remove_field('faq_items', CATEGORY_TEXT_FIELD["id"])
