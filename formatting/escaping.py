"""Content-type aware escaping of post text."""
import bleach
from django.conf import settings
from django.db import models
from django.utils.html import escape as escape_html
from django.utils.safestring import SafeData, mark_safe
from django.utils.translation import gettext_lazy as _

from .scanner import URL_PATTERN


class UnsupportedContentType(ValueError):
    """Raised for a content type no escaping policy exists for."""

    def __init__(self, content_type):
        self.content_type = content_type
        super().__init__(f'Unsupported content type: {content_type!r}')


class StrictChoices(models.TextChoices):
    """Text choices that reject unknown values with UnsupportedContentType."""

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedContentType(value) from None


class ContentType(StrictChoices):
    PLAIN = 'text/plain', _('Plain text')
    HTML = 'text/html', _('HTML')
    MFM = 'text/x.misskeymarkdown', _('MFM')


def filter_tags(html):
    """Strip tags and attributes outside the configured allow-list."""
    if not html:
        return mark_safe('')
    config = settings.FORMATTING
    cleaned = bleach.clean(
        html,
        tags=set(config['ALLOWED_TAGS']),
        attributes=config['ALLOWED_ATTRIBUTES'],
        protocols=set(config['ALLOWED_PROTOCOLS']),
        strip=True,
    )
    return mark_safe(cleaned)


def escape_plain(text):
    """
    HTML-escape everything except link-shaped chunks, which stay verbatim.

    Values already marked safe are returned unchanged, so escaping twice
    is the same as escaping once.
    """
    if isinstance(text, SafeData):
        return text
    parts = []
    last = 0
    for match in URL_PATTERN.finditer(text):
        parts.append(escape_html(text[last:match.start()]))
        parts.append(match.group(0))
        last = match.end()
    parts.append(escape_html(text[last:]))
    return mark_safe(''.join(parts))


ESCAPERS = {
    ContentType.PLAIN: escape_plain,
    ContentType.HTML: filter_tags,
    ContentType.MFM: filter_tags,
}


def escape(text, content_type):
    """Escape ``text`` for ``content_type``; unknown types raise UnsupportedContentType."""
    escaper = ESCAPERS[ContentType.parse(content_type)]
    return escaper(text or '')
