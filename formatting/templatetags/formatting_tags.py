"""Template filters for linking and truncating post text."""
from django import template

from formatting.pipeline import SourceFormat, format_input
from formatting.truncation import truncate

register = template.Library()


@register.filter(name='linkify')
def linkify_filter(text):
    """Escape plain text and link its mentions, hashtags and URLs."""
    if not text:
        return text

    html, _mentions, _tags = format_input(str(text), SourceFormat.PLAIN)
    return html


@register.filter(name='truncate_graphemes')
def truncate_graphemes(text, length=200):
    """Shorten text to ``length`` user-perceived characters, ending in an ellipsis."""
    if not text:
        return text
    try:
        length = int(length)
    except (TypeError, ValueError):
        return text
    return truncate(str(text), length)
