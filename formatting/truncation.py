"""Length-bounded truncation counted in grapheme clusters."""
import regex

GRAPHEME = regex.compile(r'\X')
TRAILING_BLANKS = regex.compile(r'(?<=[^ \t\r\n])[ \t]+\Z')


def graphemes(text):
    return GRAPHEME.findall(text)


def grapheme_length(text):
    return len(graphemes(text))


def truncate(text, max_length=200, omission='...'):
    """
    Shorten ``text`` to ``max_length`` user-perceived characters.

    Trailing spaces and tabs are dropped first. Text that is still at least
    ``max_length`` long keeps its first ``max_length - len(omission)``
    graphemes followed by ``omission``; an omission longer than the budget
    leaves only the omission.
    """
    text = TRAILING_BLANKS.sub('', text)

    clusters = graphemes(text)
    if len(clusters) < max_length:
        return text

    budget = max(0, max_length - grapheme_length(omission))
    return ''.join(clusters[:budget]) + omission
