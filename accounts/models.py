from django.conf import settings
from django.db import models
from django.db.models.signals import post_save
from django.dispatch import receiver
from django.urls import reverse
from django.utils.translation import gettext_lazy as _


class UserProfile(models.Model):
    """Public identity of a user as shown in mentions."""
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='profile',
        verbose_name=_('user')
    )
    uri = models.URLField(
        _('canonical URI'),
        max_length=500,
        blank=True,
        help_text=_('Profile URL of a remote account; local accounts leave this empty')
    )

    class Meta:
        verbose_name = _('user profile')
        verbose_name_plural = _('user profiles')

    def __str__(self):
        return self.user.username

    @property
    def url(self):
        """Canonical profile URL used as the mention link target."""
        if self.uri:
            return self.uri
        path = reverse('accounts:profile', kwargs={'username': self.user.username})
        return f"{settings.SITE_URL}{path}"

    @property
    def is_local(self):
        return not self.uri


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_user_profile(sender, instance, created, **kwargs):
    """Create profile when user is created, and drop stale handle lookups."""
    if created:
        UserProfile.objects.get_or_create(user=instance)

    from .resolver import HandleResolver
    HandleResolver().invalidate(instance.username)


@receiver(post_save, sender=UserProfile)
def invalidate_profile(sender, instance, **kwargs):
    from .resolver import HandleResolver
    HandleResolver().invalidate(instance.user.username)
