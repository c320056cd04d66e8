"""drop the duplicate faqs.category_text field"""

revision = '1762640977'
description = 'remove faqs.category_text'

CATEGORY_TEXT_FIELD = {
    "autogeneratePattern": "",
    "hidden": False,
    "id": "cgmtnwhi",
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
    op.remove_field('faqs', CATEGORY_TEXT_FIELD["id"])


def downgrade(op):
    op.add_field('faqs', CATEGORY_TEXT_FIELD, index=6)
