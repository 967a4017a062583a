"""Per-class rewrite handlers used by the linkifier."""
import logging
import re
from urllib.parse import quote

from django.conf import settings
from django.forms.utils import flatatt
from django.utils.html import format_html

from .conf import MENTIONS_FULL
from .scanner import URL_PATTERN
from .truncation import truncate

logger = logging.getLogger(__name__)

# Characters markdown would otherwise treat as formatting inside a nickname
MARKDOWN_CHARACTERS = re.compile(r'([`*_{}\[\]()#+\-.!])')

SCHEME_PREFIX = re.compile(r'^[a-z][a-z0-9+\-.]*://', re.IGNORECASE)


class Accumulator:
    """
    Distinct mentions and hashtags collected during one linkify call.

    Mentions are keyed by their raw text. Hashtags are keyed by their
    lower-cased form and keep the casing they were first seen with.
    """

    def __init__(self):
        self._mentions = {}
        self._tags = {}

    def add_mention(self, raw, profile):
        self._mentions.setdefault(raw, profile)
        return self

    def add_tag(self, raw, normalized):
        self._tags.setdefault(normalized, raw)
        return self

    @property
    def mentions(self):
        return list(self._mentions.items())

    @property
    def tags(self):
        return [(raw, normalized) for normalized, raw in self._tags.items()]


class Handler:
    """Rewrites one matched span; the base behaviour leaves it untouched."""

    def apply(self, matched, buffer, options, acc):
        return matched, acc


class PlainHandler(Handler):
    """Pass-through used for plain text and for disabled classes."""


class FunctionHandler(Handler):
    """Adapts a plain ``(matched, buffer, options, acc)`` callable."""

    def __init__(self, func):
        self.func = func

    def apply(self, matched, buffer, options, acc):
        return self.func(matched, buffer, options, acc)


def as_handler(handler):
    if isinstance(handler, Handler):
        return handler
    if callable(handler):
        return FunctionHandler(handler)
    raise TypeError(f'Not a handler: {handler!r}')


class MentionHandler(Handler):
    """Links ``@nick`` to the resolved profile and records the mention."""

    def __init__(self, resolver):
        self.resolver = resolver

    def apply(self, matched, buffer, options, acc):
        profile = self.resolver.lookup(matched[1:])
        if profile is None:
            logger.debug(f'No profile found for {matched}')
            return matched, acc
        acc.add_mention(matched, profile)
        return mention_tag(profile, options), acc


class EscapeMentionHandler(Handler):
    """Backslash-escapes markdown characters in mentions of known users."""

    def __init__(self, resolver):
        self.resolver = resolver

    def apply(self, matched, buffer, options, acc):
        if self.resolver.lookup(matched[1:]) is None:
            return matched, acc
        return MARKDOWN_CHARACTERS.sub(r'\\\1', matched), acc


class HashtagHandler(Handler):
    """Links ``#Tag`` to its lower-cased tag feed and records it."""

    def apply(self, matched, buffer, options, acc):
        tag = matched[1:].lower()
        acc.add_tag(matched, tag)
        return hashtag_tag(matched, tag), acc


class UrlHandler(Handler):
    """Wraps a recognised URL in an anchor."""

    def apply(self, matched, buffer, options, acc):
        return url_tag(matched, options), acc


def mention_tag(profile, options):
    if options.mentions_format == MENTIONS_FULL:
        nickname = profile.full_nickname
    else:
        nickname = profile.local_nickname
    return format_html(
        '<span class="h-card"><a class="u-url mention" data-user="{}" href="{}" rel="ugc">@<span>{}</span></a></span>',
        profile.id,
        profile.url,
        nickname,
    )


def hashtag_tag(tag_text, tag):
    url = f'{settings.SITE_URL}/tag/{quote(tag)}'
    return format_html(
        '<a class="hashtag" data-tag="{}" href="{}" rel="tag ugc">{}</a>',
        tag,
        url,
        tag_text,
    )


def url_tag(url, options):
    match = URL_PATTERN.fullmatch(url)
    if match is not None and match.group('link') and not SCHEME_PREFIX.match(url):
        href = f'http://{url}'
    else:
        href = url

    display = url
    if options.strip_prefix:
        display = SCHEME_PREFIX.sub('', display)
    if options.truncate:
        display = truncate(display, options.truncate)

    attrs = {'href': href}
    if options.link_class:
        attrs['class'] = options.link_class
    if options.rel:
        attrs['rel'] = options.rel
    if options.new_window:
        attrs['target'] = '_blank'
    return format_html('<a{}>{}</a>', flatatt(attrs), display)
