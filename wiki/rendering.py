"""Read-path rendering of article bodies to sanitized HTML."""

from __future__ import annotations

import re

import bleach
import markdown
from django.utils.text import slugify

from . import conf

WIKI_LINK = re.compile(r"\[\[([^|\]]+)(?:\|([^\]]+))?\]\]")

ALLOWED_TAGS = list(bleach.sanitizer.ALLOWED_TAGS) + [
    "p",
    "pre",
    "span",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "hr",
    "br",
    "div",
    "table",
    "thead",
    "tbody",
    "tr",
    "th",
    "td",
    "img",
    "a",
    "caption",
]

ALLOWED_ATTRIBUTES = {
    "a": ["href", "class", "title", "rel", "target"],
    "span": ["class"],
    "div": ["class"],
    "table": ["class"],
    "th": ["class"],
    "td": ["class"],
    "img": ["src", "alt", "title", "loading", "width", "height"],
}


def _link(match: re.Match) -> str:
    target = match.group(1)
    label = match.group(2) or target
    url = conf.ARTICLE_URL.format(slug=slugify(target, allow_unicode=True))
    return f'<a href="{url}" class="wiki-link">{label}</a>'


def render_body(body: str) -> str:
    """Render ``[[Target|label]]`` links and markdown, then sanitize."""
    processed = WIKI_LINK.sub(_link, body or "")
    html = markdown.markdown(processed, extensions=["tables"])
    return bleach.clean(html, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES)
