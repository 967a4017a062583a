"""Turns mentions, hashtags and URLs in post text into links."""
from django.conf import settings
from django.utils.module_loading import import_string

from .conf import get_options
from .escaping import escape_plain
from .handlers import (
    Accumulator, EscapeMentionHandler, HashtagHandler, MentionHandler, PlainHandler,
    UrlHandler, as_handler,
)
from .safe_mention import has_mention, split_safe
from .scanner import SpanKind, scan

PLAIN = PlainHandler()

DEFAULT_RESOLVER = 'accounts.resolver.HandleResolver'


def get_resolver():
    """Instantiate the configured handle resolver."""
    path = getattr(settings, 'FORMATTING', {}).get('RESOLVER', DEFAULT_RESOLVER)
    return import_string(path)()


def build_handlers(options, resolver):
    """Pick one handler per span class; disabled classes fall back to plain."""
    handlers = {SpanKind.PLAIN: PLAIN}

    if options.mention:
        handlers[SpanKind.MENTION] = as_handler(options.mention_handler or MentionHandler(resolver))
    if options.hashtag:
        handlers[SpanKind.HASHTAG] = as_handler(options.hashtag_handler or HashtagHandler())
    if options.url:
        handlers[SpanKind.URL] = as_handler(options.url_handler or UrlHandler())
    return handlers


def link_map(text, acc, options, handlers, escape_text=False):
    """
    Rewrite every span of ``text`` with its handler, threading ``acc`` through.

    With ``escape_text`` set, ``text`` is raw plain text: it is scanned
    without markup, and whatever is not handler-made HTML is escaped the
    way ``text/plain`` content is.
    """
    parts = []
    for span in scan(text, extra=options.extra, markup=not escape_text):
        matched = span.text_of(text)
        handler = handlers.get(span.kind, PLAIN)
        if handler is PLAIN:
            replacement = matched
        else:
            replacement, acc = handler.apply(matched, _word_around(text, span), options, acc)
        parts.append(escape_plain(replacement) if escape_text else replacement)
    return ''.join(parts), acc


def linkify(text, options=None, resolver=None, escape_text=False):
    """
    Link mentions, hashtags and URLs in ``text``.

    Returns ``(html, mentions, tags)`` where ``mentions`` is a list of
    ``(raw_mention, profile)`` and ``tags`` a list of ``(raw_tag, tag)``,
    both distinct and in the order they were found.

    With ``safe_mention`` set, only the run of mentions leading the post is
    linked; mentions after it stay plain text and are not returned.
    ``escape_text`` treats ``text`` as unescaped plain text (see ``link_map``).
    """
    options = get_options(options)
    if not text:
        return '', [], []
    if options.mention and resolver is None and options.mention_handler is None:
        resolver = get_resolver()

    acc = Accumulator()
    if options.safe_mention and has_mention(text):
        prefix, rest = split_safe(text, markup=not escape_text)
        prefix_html, acc = link_map(prefix, acc, options, build_handlers(options, resolver), escape_text)

        rest_options = options.merge(mention=False)
        rest_html, acc = link_map(rest, acc, rest_options, build_handlers(rest_options, resolver), escape_text)
        html = prefix_html + rest_html
    else:
        html, acc = link_map(text, acc, options, build_handlers(options, resolver), escape_text)

    return html, acc.mentions, acc.tags


def mentions_escape(text, options=None, resolver=None):
    """Escape markdown characters inside mentions of known users, leaving everything else alone."""
    if not text:
        return ''
    options = get_options(options, mention=True, hashtag=False, url=False, extra=False)
    if resolver is None:
        resolver = get_resolver()

    handlers = {
        SpanKind.PLAIN: PLAIN,
        SpanKind.MENTION: EscapeMentionHandler(resolver),
    }
    escaped, _acc = link_map(text, Accumulator(), options, handlers)
    return escaped


def _word_around(text, span):
    """The whitespace-delimited run of text containing ``span``."""
    start = span.start
    while start > 0 and not text[start - 1].isspace():
        start -= 1
    end = span.end
    while end < len(text) and not text[end].isspace():
        end += 1
    return text[start:end]
