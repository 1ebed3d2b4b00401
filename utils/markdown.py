"""Markdown to sanitized HTML for the analysis text the model returns."""

import markdown as md
import nh3

ALLOWED_TAGS = {
    "a", "b", "blockquote", "br", "code", "em", "h1", "h2", "h3", "h4", "h5", "h6",
    "hr", "i", "li", "ol", "p", "pre", "strong", "table", "tbody", "td", "th",
    "thead", "tr", "ul",
}


def render_markdown(text: str) -> str:
    """Render Markdown and strip anything outside a small allow-list of tags."""
    if not text:
        return ""
    html = md.markdown(text, extensions=["tables", "sane_lists"])
    return nh3.clean(html, tags=ALLOWED_TAGS)
