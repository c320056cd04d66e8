"""
Centralized application constants.

Sections:
    - CACHE: durations and tag names for backend content
    - CONTACT: enquiry choices and limits
"""


# =============================================================================
# CACHE - DURATIONS (seconds)
# =============================================================================

class CacheDuration:
    """Cache duration presets by how often the content changes."""

    STATIC = 3600 * 24 * 7  # company info, values, leadership, locations
    LONG = 3600 * 24  # features, integrations, partners, testimonials, FAQs
    MEDIUM = 3600  # blogs, stats
    SHORT = 300  # jobs, press releases
    DYNAMIC = 0  # form submissions; never cached


# =============================================================================
# CACHE - TAGS
# =============================================================================

# Tag strings are persisted in the cache store; renaming one orphans the
# entries tagged with the old value until they expire.
CACHE_TAGS = {
    # Content
    "blogs": "blogs",
    "authors": "authors",
    "categories": "categories",
    # Marketing
    "testimonials": "testimonials",
    "partners": "partners",
    "press": "press",
    # Product
    "features": "features",
    "integrations": "integrations",
    "pricing": "pricing",
    # Company
    "leadership": "leadership",
    "values": "values",
    "milestones": "milestones",
    "stats": "stats",
    # Careers
    "jobs": "jobs",
    "benefits": "benefits",
    "locations": "locations",
    # Support
    "support": "support",
    "faqs": "faqs",
    "faq-topics": "faq-topics",
    "contact": "contact-options",
    # User data
    "enquiries": "enquiries",
    # Marketing pages
    "compliance": "compliance",
    "security": "security",
    "process-steps": "process-steps",
    "employer-stats": "employer-stats",
    "cta-cards": "cta-cards",
}

FREQUENCY_DOMAINS = {
    "hourly": ("blogs", "jobs", "press", "stats"),
    "daily": ("pricing", "testimonials", "features", "integrations"),
    "weekly": ("leadership", "values", "milestones", "partners", "locations"),
}

SITE_PATHS = (
    "/",
    "/blog",
    "/pricing",
    "/careers",
    "/contact",
    "/about",
    "/resources",
    "/for-employees",
    "/for-employers",
    "/how-it-works",
    "/compliance",
)


# =============================================================================
# CONTACT - ENQUIRIES
# =============================================================================

ENQUIRY_INTEREST_CHOICES = [
    ("demo", "Request a demo"),
    ("pricing", "Pricing"),
    ("contact", "General contact"),
    ("other", "Other"),
]

ENQUIRY_DEFAULT_INTEREST = "contact"
ENQUIRY_STATUS_NEW = "new"
