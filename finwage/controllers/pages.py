"""Server-rendered marketing pages.

Each view is cached as rendered HTML under ``view/<path>`` and tagged with
the content domains it reads, so a revalidation of any of those domains drops
the page together with the underlying reads.
"""

from flask import Blueprint, current_app, render_template, request

from finwage.controllers._decorators import cached_page
from finwage.services.content import ListOptions

bp_pages = Blueprint('pages', __name__)


def _content():
    return current_app.extensions["finwage"]["content"]


@bp_pages.get('/')
@cached_page("testimonials", "features", "integrations", "partners", "pricing", "stats", "cta-cards")
def home():
    content = _content()
    return render_template(
        'home.html',
        testimonials=content.testimonials.featured(6),
        features=content.features.all(),
        integrations=content.integrations.all(),
        partners=content.partners.all(),
        plans=content.pricing.all(),
        stats=content.stats.all(),
        cta_cards=content.cta_cards.all(),
    )


@bp_pages.get('/blog')
@cached_page("blogs", "categories")
def blog_index():
    content = _content()
    page = request.args.get('page', 1, type=int) or 1
    category = request.args.get('category') or None
    posts = content.blogs.list(ListOptions(page=max(page, 1), per_page=12, category=category))
    return render_template(
        'blog_list.html',
        posts=posts,
        featured=content.blogs.featured(3),
        categories=content.categories.all(),
        category=category,
    )


@bp_pages.get('/blog/<slug>')
@cached_page("blogs", record_arg="slug")
def blog_detail(slug):
    content = _content()
    post = content.blogs.get_by_slug_or_id(slug)
    related = []
    category_id = post.get('category')
    if category_id:
        related = [p for p in content.blogs.by_category(category_id, limit=4) if p.get('id') != post.get('id')][:3]
    return render_template('blog_detail.html', post=post, related=related)


@bp_pages.get('/pricing')
@cached_page("pricing", "faqs")
def pricing():
    content = _content()
    return render_template('pricing.html', plans=content.pricing.all(), faqs=content.faqs.all())


@bp_pages.get('/contact')
@cached_page("contact", "locations")
def contact():
    content = _content()
    return render_template(
        'contact.html',
        contact_options=content.contact_options.all(),
        locations=content.locations.all(),
    )


@bp_pages.get('/careers')
@cached_page("jobs", "benefits", "values", "locations")
def careers():
    content = _content()
    return render_template(
        'careers.html',
        jobs=content.jobs.all(),
        featured_jobs=content.jobs.featured(3),
        benefits=content.benefits.all(),
        values=content.values.all(),
        locations=content.locations.all(),
    )


@bp_pages.get('/about')
@cached_page("leadership", "values", "milestones", "stats")
def about():
    content = _content()
    return render_template(
        'about.html',
        leadership=content.leadership.all(),
        values=content.values.all(),
        milestones=content.milestones.all(),
        stats=content.stats.all(),
    )


@bp_pages.get('/resources')
@cached_page("support", "faqs", "faq-topics", "press")
def resources():
    content = _content()
    return render_template(
        'resources.html',
        support=content.support.all(),
        faqs=content.faqs.all(),
        faq_topics=content.faq_topics.all(),
        press=content.press.all(),
    )


@bp_pages.get('/for-employees')
@cached_page("benefits", "testimonials")
def for_employees():
    content = _content()
    return render_template(
        'for_employees.html',
        benefits=content.benefits.all(),
        testimonials=content.testimonials.featured(3),
    )


@bp_pages.get('/for-employers')
@cached_page("benefits", "employer-stats", "integrations")
def for_employers():
    content = _content()
    return render_template(
        'for_employers.html',
        benefits=content.benefits.all(limit=20),
        stats=content.employer_stats.all(limit=10),
        integrations=content.integrations.all(limit=50),
    )


@bp_pages.get('/how-it-works')
@cached_page("process-steps", "benefits")
def how_it_works():
    content = _content()
    return render_template(
        'how_it_works.html',
        steps=content.process_steps.by_category("employee", limit=10),
        benefits=content.benefits.all(limit=20),
    )


@bp_pages.get('/compliance')
@cached_page("compliance", "security")
def compliance():
    content = _content()
    return render_template(
        'compliance.html',
        compliance_items=content.compliance.all(),
        security_features=content.security.all(),
    )
