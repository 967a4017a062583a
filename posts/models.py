from django.conf import settings
from django.db import models
from django.urls import reverse
from django.utils.html import strip_tags
from django.utils.translation import gettext_lazy as _

from formatting.pipeline import SourceFormat
from formatting.truncation import truncate


class Hashtag(models.Model):
    """A normalized (lower-cased) hashtag."""
    name = models.CharField(_('name'), max_length=200, unique=True)
    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('hashtag')
        verbose_name_plural = _('hashtags')
        ordering = ['name']

    def __str__(self):
        return f"#{self.name}"

    def get_absolute_url(self):
        return reverse('tag_feed', kwargs={'tag': self.name})


class Post(models.Model):
    """A user-authored post and its rendered HTML."""

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='posts',
        verbose_name=_('author')
    )
    source = models.TextField(_('source'))
    content_type = models.CharField(
        _('content type'),
        max_length=40,
        choices=SourceFormat.choices,
        default=SourceFormat.PLAIN
    )
    content = models.TextField(_('content'), blank=True)
    safe_mention = models.BooleanField(
        _('safe mentions'),
        default=False,
        help_text=_('Only mentions leading the post notify their users')
    )
    tags = models.ManyToManyField(
        Hashtag,
        blank=True,
        related_name='posts',
        verbose_name=_('hashtags')
    )
    mentioned_users = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name='mentioned_in',
        verbose_name=_('mentioned users')
    )
    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('post')
        verbose_name_plural = _('posts')
        ordering = ['-created_at']

    def __str__(self):
        return f"#{self.id} - {self.summary}"

    def get_absolute_url(self):
        return reverse('posts:detail', kwargs={'pk': self.pk})

    @property
    def summary(self):
        """Short plain-text preview of the rendered content."""
        return truncate(strip_tags(self.content or self.source), 80)


class Notification(models.Model):
    """In-app notification for users."""

    class NotificationType(models.TextChoices):
        MENTION = 'mention', _('Mention')

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications',
        verbose_name=_('user')
    )
    notification_type = models.CharField(
        _('type'),
        max_length=20,
        choices=NotificationType.choices,
        default=NotificationType.MENTION
    )
    title = models.CharField(_('title'), max_length=200)
    message = models.TextField(_('message'))
    post = models.ForeignKey(
        Post,
        on_delete=models.CASCADE,
        related_name='notifications',
        verbose_name=_('post'),
        null=True,
        blank=True
    )
    is_read = models.BooleanField(_('read'), default=False)
    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('notification')
        verbose_name_plural = _('notifications')
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} - {self.user.username}"
