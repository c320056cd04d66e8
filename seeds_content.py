"""Seed helpers for baseline marketing content."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Tuple

from integrations.pocketbase.client import PocketBaseClient, quote_value

logger = logging.getLogger(__name__)

CATEGORIES = [
    {
        "name": "Financial Wellness",
        "slug": "financial-wellness",
        "description": "Tips and insights on achieving financial wellness in the workplace.",
        "color": "#1d44c3",
    },
    {
        "name": "Earned Wage Access",
        "slug": "earned-wage-access",
        "description": "Everything about on-demand pay and earned wage access solutions.",
        "color": "#0d2463",
    },
    {
        "name": "Employee Benefits",
        "slug": "employee-benefits",
        "description": "Modern employee benefits and compensation strategies.",
        "color": "#28a745",
    },
]

AUTHORS = [
    {
        "name": "Sarah Mitchell",
        "slug": "sarah-mitchell",
        "email": "sarah@finwage.com",
        "role": "Head of Content",
        "bio": "Head of Content at FinWage with 10+ years experience in fintech and employee benefits.",
        "active": True,
    },
    {
        "name": "David Chen",
        "slug": "david-chen",
        "email": "david@finwage.com",
        "role": "Product Strategist",
        "bio": "Financial wellness expert and product strategist.",
        "active": True,
    },
]

CONTACT_OPTIONS = [
    {
        "title": "Sales",
        "description": "Talk to our team about bringing FinWage to your workforce.",
        "email": "sales@finwage.com",
        "is_featured": True,
    },
    {
        "title": "Support",
        "description": "Already a customer? Our support team is here to help.",
        "email": "support@finwage.com",
        "is_featured": False,
    },
]

FAQS = [
    {
        "question": "What is earned wage access?",
        "answer": "Earned wage access lets employees draw on wages they have already earned before payday.",
        "order": 1,
    },
    {
        "question": "Does FinWage cost employers anything?",
        "answer": "Plans start with no cost to the employer; see the pricing page for details.",
        "order": 2,
    },
]

# (collection, natural key field, records)
SEED_SETS: List[Tuple[str, str, List[Dict[str, Any]]]] = [
    ("category", "slug", CATEGORIES),
    ("authors", "slug", AUTHORS),
    ("contact_options", "title", CONTACT_OPTIONS),
    ("faqs", "question", FAQS),
]


def _exists(client: PocketBaseClient, collection: str, field: str, value: Any) -> bool:
    data = client.list_records(collection, per_page=1, sort=None, filter=f"{field} = {quote_value(value)}")
    return bool(data.get("items"))


def seed_collection(
    client: PocketBaseClient, collection: str, key_field: str, records: Iterable[Dict[str, Any]]
) -> int:
    """Create the records of ``collection`` that are missing; returns how many were created."""
    created = 0
    for record in records:
        if _exists(client, collection, key_field, record[key_field]):
            continue
        client.create_record(collection, record)
        created += 1
    logger.info("Seeded %s: %s new record(s)", collection, created)
    return created


def seed_content(client: PocketBaseClient) -> Dict[str, int]:
    """Populate default categories, authors, contact options and FAQs if they do not exist."""
    return {
        collection: seed_collection(client, collection, key_field, records)
        for collection, key_field, records in SEED_SETS
    }


if __name__ == "__main__":  # pragma: no cover - manual invocation only
    from dotenv import load_dotenv

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    from config import Config

    pb = PocketBaseClient(Config.POCKETBASE_URL, timeout=Config.POCKETBASE_TIMEOUT)
    pb.authenticate_superuser(Config.POCKETBASE_ADMIN_EMAIL, Config.POCKETBASE_ADMIN_PASSWORD)
    print(seed_content(pb))
