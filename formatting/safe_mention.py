"""
Splits a post into its leading run of mentions and the rest.

The leading run is, from the start of the text: any whitespace, any number
of markup tags (each optionally followed by whitespace), then one or more
``@mention`` tokens each followed by whitespace. Only that run is linked
and notified in safe-mention mode.
"""


def has_mention(text):
    """Cheap check before running the splitter; the scanner starts a mention at any ``@``."""
    return bool(text) and '@' in text


def split_safe(text, markup=True):
    """
    Return ``(mention_prefix, rest)``; the prefix is empty when the post does
    not lead with mentions. With ``markup`` off no leading tags are skipped.
    """
    pos = _skip_whitespace(text, 0)

    while markup:
        tag_end = _tag_end(text, pos)
        if tag_end is None:
            break
        pos = _skip_whitespace(text, tag_end)

    prefix_end = None
    while True:
        mention_end = _mention_end(text, pos)
        if mention_end is None:
            break
        after = _skip_whitespace(text, mention_end)
        if after == mention_end:
            # a mention must be followed by whitespace to join the run
            break
        prefix_end = pos = after

    if prefix_end is None:
        return '', text
    return text[:prefix_end], text[prefix_end:]


def _skip_whitespace(text, pos):
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _tag_end(text, pos):
    if pos >= len(text) or text[pos] != '<':
        return None
    close = text.find('>', pos + 1)
    if close <= pos + 1:
        return None
    return close + 1


def _mention_end(text, pos):
    if pos >= len(text) or text[pos] != '@':
        return None
    end = pos + 1
    while end < len(text) and not text[end].isspace():
        end += 1
    return end if end > pos + 1 else None
