"""Splits raw post text into URL, mention, hashtag and plain spans."""
import re
from dataclasses import dataclass
from enum import Enum

# Scheme-prefixed or bare-domain links, then generic ``scheme:opaque`` tokens.
URL_PATTERN = re.compile(
    r"""
    (?P<link>(?:https?://)?[\w.-]+(?:\.[\w.-]+)+[\w\-._~%:/?\#\[\]@!$&'()*+,;=]+)
    |
    (?P<extra>[a-z][0-9a-z+\-.]*:[0-9a-z$\-_.+!*'(),]+)
    """,
    re.IGNORECASE | re.VERBOSE,
)

# Markup is never linked: comments, tags, and the bodies of the elements below.
TAG_PATTERN = re.compile(r'<!--.*?-->|<(/?)([a-zA-Z][\w:-]*)\b[^<>]*>', re.DOTALL)
SKIPPED_ELEMENTS = ('a', 'code', 'pre')

TRAILING_PUNCTUATION = '.,;:!?"\''
BRACKETS = {')': '(', ']': '[', '}': '{'}
OPENERS = '([{"\''


class SpanKind(Enum):
    URL = 'url'
    MENTION = 'mention'
    HASHTAG = 'hashtag'
    PLAIN = 'plain'


@dataclass(frozen=True)
class Span:
    kind: SpanKind
    start: int
    end: int

    def text_of(self, source):
        return source[self.start:self.end]


def scan(text, extra=True, markup=True):
    """
    Classify ``text`` into non-overlapping spans covering it exactly once.

    Hashtags and URLs only start a word; ``@`` starts a mention anywhere,
    so ``user@host`` yields ``user`` followed by the mention ``@host``.
    ``scheme:opaque`` tokens count as URLs only when ``extra`` is set.
    With ``markup`` off, ``<`` is an ordinary character instead of
    starting a tag.
    """
    spans = []
    if not text:
        return spans

    length = len(text)
    plain_start = 0
    pos = 0
    word_start = True

    while pos < length:
        char = text[pos]

        if char.isspace():
            pos += 1
            word_start = True
            continue

        if char == '<' and markup:
            markup_end = _skip_markup(text, pos)
            if markup_end is not None:
                pos = markup_end
                word_start = True
                continue

        token = _match_token(text, pos, word_start, extra)
        if token is not None:
            kind, end = token
            if plain_start < pos:
                spans.append(Span(SpanKind.PLAIN, plain_start, pos))
            spans.append(Span(kind, pos, end))
            pos = plain_start = end
            word_start = False
            continue

        word_start = char in OPENERS
        pos += 1

    if plain_start < length:
        spans.append(Span(SpanKind.PLAIN, plain_start, length))
    return spans


def _skip_markup(text, pos):
    """Return where the markup starting at ``pos`` ends, or None if it is not markup."""
    match = TAG_PATTERN.match(text, pos)
    if match is None:
        return None

    closing, name = match.group(1), match.group(2)
    if name is None or closing or match.group(0).endswith('/>'):
        return match.end()

    name = name.lower()
    if name not in SKIPPED_ELEMENTS:
        return match.end()

    closer = re.compile(rf'</{name}\s*>', re.IGNORECASE).search(text, match.end())
    return closer.end() if closer else len(text)


def _match_token(text, pos, word_start, extra):
    char = text[pos]

    if char == '#' and word_start:
        end = _sigil_token_end(text, pos)
        return (SpanKind.HASHTAG, end) if end else None

    if char == '@':
        end = _sigil_token_end(text, pos)
        return (SpanKind.MENTION, end) if end else None

    if not word_start:
        return None

    match = URL_PATTERN.match(text, pos)
    if match is None:
        return None

    end = _strip_trailing(text, pos, match.end())
    match = URL_PATTERN.fullmatch(text, pos, end)
    if match is None:
        return None
    if match.group('extra') and not extra:
        return None
    if match.group('link') and '://' not in match.group(0) and not _has_valid_tld(match.group(0)):
        return None
    return SpanKind.URL, end


def _sigil_token_end(text, pos):
    """End of ``#tag``/``@nick`` starting at ``pos``; None when nothing follows the sigil."""
    end = pos + 1
    while end < len(text) and not text[end].isspace() and text[end] != '<':
        end += 1
    end = _strip_trailing(text, pos, end)
    return end if end > pos + 1 else None


def _strip_trailing(text, start, end):
    """Hand sentence punctuation and unbalanced closing brackets back to plain text."""
    while end > start:
        last = text[end - 1]
        if last in TRAILING_PUNCTUATION:
            end -= 1
            continue
        if last in BRACKETS:
            segment = text[start:end]
            if segment.count(last) > segment.count(BRACKETS[last]):
                end -= 1
                continue
        break
    return end


def _has_valid_tld(candidate):
    host = re.split(r'[/?#:]', candidate, maxsplit=1)[0]
    tld = host.rsplit('.', 1)[-1]
    return len(tld) >= 2 and tld.isalpha()
