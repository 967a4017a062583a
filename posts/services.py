"""Publishing posts: rendering, tag indexing and mention notifications."""
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.db import transaction
from django.utils.translation import gettext as _

from formatting.conf import get_options
from formatting.pipeline import SourceFormat, format_input

from .models import Hashtag, Notification, Post

User = get_user_model()
logger = logging.getLogger(__name__)

TAG_MAX_LENGTH = Hashtag._meta.get_field('name').max_length


def publish_post(author, source, content_type=SourceFormat.PLAIN, safe_mention=None,
                 options=None, resolver=None, post_url=''):
    """Render and store a post, index its hashtags and notify mentioned users."""
    options = get_options(options)
    if safe_mention is not None:
        options = options.merge(safe_mention=safe_mention)

    content_type = SourceFormat.parse(content_type)
    html, mentions, tags = format_input(source, content_type, options, resolver)

    with transaction.atomic():
        post = Post.objects.create(
            author=author,
            source=source,
            content_type=content_type,
            content=html,
            safe_mention=options.safe_mention,
        )
        post.tags.set(get_hashtags(tags))
        users = mentioned_users(mentions)
        post.mentioned_users.set(users)

    send_mention_notifications(post, users, post_url)
    return post


def get_hashtags(tags):
    """Hashtag rows for ``(raw, normalized)`` pairs, creating missing ones."""
    hashtags = []
    for _raw, name in tags:
        if len(name) > TAG_MAX_LENGTH:
            logger.info(f'Skipping hashtag longer than {TAG_MAX_LENGTH} characters')
            continue
        hashtag, _created = Hashtag.objects.get_or_create(name=name)
        hashtags.append(hashtag)
    return hashtags


def mentioned_users(mentions):
    """Distinct users behind ``(raw, profile)`` pairs, in mention order."""
    ids = list(dict.fromkeys(profile.id for _raw, profile in mentions))
    users = User.objects.in_bulk(ids)
    return [users[pk] for pk in ids if pk in users]


def send_mention_notifications(post, mentioned_users, post_url=''):
    """Create in-app notifications and optionally send email to mentioned users."""
    author_name = post.author.get_full_name() or post.author.username

    for user in mentioned_users:
        if user.pk == post.author_id:
            continue

        title = _('%(author)s mentioned you') % {'author': author_name}
        message = _('In post #%(id)s:\n\n"%(summary)s"') % {
            'id': post.id,
            'summary': post.summary,
        }

        Notification.objects.create(
            user=user,
            notification_type=Notification.NotificationType.MENTION,
            title=title,
            message=message,
            post=post,
        )
        logger.info(f'Notification created for {user.username}')

        # Send email only if enabled and user has email
        if settings.ENABLE_EMAIL_NOTIFICATIONS and user.email:
            subject = _('You were mentioned in post #%(id)s') % {'id': post.id}
            email_message = _(
                'Hello %(name)s,\n\n'
                '%(author)s mentioned you in post #%(id)s:\n\n'
                '%(source)s\n\n'
                '%(url)s'
            ) % {
                'name': user.get_full_name() or user.username,
                'author': author_name,
                'id': post.id,
                'source': post.source,
                'url': post_url,
            }

            try:
                send_mail(
                    subject,
                    email_message,
                    settings.DEFAULT_FROM_EMAIL,
                    [user.email],
                    fail_silently=False,
                )
                logger.info(f'Email notification sent to {user.email}')
            except Exception as e:
                logger.error(f'Failed to send email to {user.email}: {e}')


def rerender_post(post, options=None, resolver=None):
    """Render ``post.source`` again with the current formatter settings."""
    options = get_options(options).merge(safe_mention=post.safe_mention)
    html, _mentions, tags = format_input(post.source, post.content_type, options, resolver)
    post.content = html
    post.save(update_fields=['content', 'updated_at'])
    post.tags.set(get_hashtags(tags))
    return post
