"""Turns a post source into HTML according to its declared format."""
import re

from django.utils.safestring import mark_safe
from django.utils.translation import gettext_lazy as _

from .conf import get_options
from .escaping import ContentType, StrictChoices, escape
from .linkify import get_resolver, linkify, mentions_escape
from .rendering import markdown_to_html

NEWLINE = re.compile(r'\r?\n')


class SourceFormat(StrictChoices):
    PLAIN = 'text/plain', _('Plain text')
    HTML = 'text/html', _('HTML')
    MARKDOWN = 'text/markdown', _('Markdown')
    MFM = 'text/x.misskeymarkdown', _('MFM')


def format_input(text, content_type, options=None, resolver=None):
    """
    Render ``text`` written in ``content_type`` to HTML.

    Plain text is linked, with the text around the links escaped, and gets
    ``<br>`` for newlines. HTML is tag-filtered, then linked. Markdown has
    its mentions escaped, is rendered, linked, and tag-filtered last.

    Returns ``(html, mentions, tags)`` as ``linkify`` does.
    """
    source_format = SourceFormat.parse(content_type)
    options = get_options(options)
    if resolver is None:
        resolver = get_resolver()

    if source_format == SourceFormat.PLAIN:
        html, mentions, tags = linkify(text, options, resolver, escape_text=True)
        html = NEWLINE.sub('<br>', html)
    elif source_format == SourceFormat.HTML:
        html, mentions, tags = linkify(escape(text, ContentType.HTML), options, resolver)
    else:
        rendered = markdown_to_html(mentions_escape(text, options, resolver))
        html, mentions, tags = linkify(rendered, options, resolver)
        html = escape(html, ContentType.HTML)

    return mark_safe(html), mentions, tags
