"""Formatter options, defaulted from ``settings.FORMATTING``."""
from dataclasses import dataclass, fields, replace

from django.conf import settings

MENTIONS_FULL = 'full'
MENTIONS_LOCAL = 'local'

# settings.FORMATTING key -> LinkifyOptions field
SETTINGS_KEYS = {
    'MENTION': 'mention',
    'HASHTAG': 'hashtag',
    'URL': 'url',
    'EXTRA': 'extra',
    'SAFE_MENTION': 'safe_mention',
    'MENTIONS_FORMAT': 'mentions_format',
    'REL': 'rel',
    'CLASS': 'link_class',
    'NEW_WINDOW': 'new_window',
    'STRIP_PREFIX': 'strip_prefix',
    'TRUNCATE': 'truncate',
}


@dataclass(frozen=True)
class LinkifyOptions:
    """Which token classes are linked and how links are rendered."""
    mention: bool = True
    hashtag: bool = True
    url: bool = True
    extra: bool = True
    safe_mention: bool = False
    mentions_format: str = MENTIONS_LOCAL
    rel: str = 'ugc'
    link_class: str = None
    new_window: bool = False
    strip_prefix: bool = False
    truncate: int = 0
    mention_handler: object = None
    hashtag_handler: object = None
    url_handler: object = None

    def __post_init__(self):
        if self.mentions_format not in (MENTIONS_FULL, MENTIONS_LOCAL):
            raise ValueError(f'Unknown mentions format: {self.mentions_format!r}')

    @classmethod
    def from_settings(cls, **overrides):
        """Build options from settings, then apply keyword overrides."""
        configured = getattr(settings, 'FORMATTING', {})
        values = {
            field: configured[key]
            for key, field in SETTINGS_KEYS.items()
            if key in configured
        }
        values.update(overrides)
        return cls(**values)

    def merge(self, **overrides):
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f'Unknown formatter options: {", ".join(sorted(unknown))}')
        return replace(self, **overrides)


def get_options(options=None, **overrides):
    """Return ``options`` (or the configured defaults) with overrides applied."""
    if options is None:
        return LinkifyOptions.from_settings(**overrides)
    if overrides:
        return options.merge(**overrides)
    return options
