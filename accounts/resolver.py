"""Resolves @handles to user profiles, with lookups cached."""
import hashlib
import logging
from dataclasses import dataclass

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import DatabaseError

from .models import UserProfile

logger = logging.getLogger(__name__)

User = get_user_model()

# Cached in place of a profile when a handle does not resolve
MISSING = 'missing'


@dataclass(frozen=True)
class Profile:
    """What the formatter needs to know about a mentioned user."""
    id: int
    nickname: str
    url: str

    @property
    def full_nickname(self):
        if '@' in self.nickname:
            return self.nickname
        return f"{self.nickname}@{settings.SITE_HOST}"

    @property
    def local_nickname(self):
        return self.nickname.split('@', 1)[0]


class HandleResolver:
    """
    Look up users by handle.

    ``alice``, ``Alice`` and ``alice@<SITE_HOST>`` all name the local user
    ``alice``; any other ``nick@host`` is matched against the username of
    the remote account stored under that exact name.
    """
    cache_prefix = 'handle'

    def __init__(self, timeout=None):
        if timeout is None:
            timeout = settings.FORMATTING.get('RESOLVER_CACHE_TIMEOUT', 300)
        self.timeout = timeout

    def normalize(self, handle):
        handle = (handle or '').lstrip('@')
        local_suffix = f"@{settings.SITE_HOST}".lower()
        if handle.lower().endswith(local_suffix):
            handle = handle[:-len(local_suffix)]
        return handle

    def cache_key(self, handle):
        digest = hashlib.md5(handle.lower().encode('utf-8')).hexdigest()
        return f"{self.cache_prefix}:{digest}"

    def lookup(self, handle):
        """Return the Profile for ``handle``, or None when nobody has it."""
        handle = self.normalize(handle)
        max_length = User._meta.get_field(User.USERNAME_FIELD).max_length
        if not handle or len(handle) > max_length:
            return None

        key = self.cache_key(handle)
        cached = cache.get(key)
        if cached == MISSING:
            return None
        if cached is not None:
            return cached

        try:
            profile = self.fetch(handle)
        except DatabaseError as e:
            logger.warning(f'Handle lookup for {handle} failed: {e}')
            return None

        cache.set(key, profile or MISSING, self.timeout)
        return profile

    def fetch(self, handle):
        lookup = {f'{User.USERNAME_FIELD}__iexact': handle}
        user = User.objects.filter(**lookup).order_by('pk').first()
        if user is None:
            return None
        return self.to_profile(user)

    def to_profile(self, user):
        try:
            url = user.profile.url
        except UserProfile.DoesNotExist:
            url = UserProfile(user=user).url
        return Profile(id=user.pk, nickname=user.get_username(), url=url)

    def invalidate(self, handle):
        handle = self.normalize(handle)
        if handle:
            cache.delete(self.cache_key(handle))
