from io import StringIO

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.core import mail
from django.core.cache import cache
from django.core.management import call_command
from django.test import Client, RequestFactory, TestCase, override_settings
from django.urls import reverse

from formatting.escaping import UnsupportedContentType
from formatting.pipeline import SourceFormat

from .context_processors import notifications
from .models import Hashtag, Notification, Post
from .services import publish_post

User = get_user_model()


@override_settings(SITE_URL='https://example.test', SITE_HOST='example.test')
class PublishPostTest(TestCase):
    def setUp(self):
        cache.clear()
        self.alice = User.objects.create_user(username='alice', first_name='Alice')
        self.bob = User.objects.create_user(username='bob', email='bob@example.com')
        self.carol = User.objects.create_user(username='carol')

    def test_publish_plain_post(self):
        post = publish_post(self.alice, 'Hello @bob and @alice #Django #django <3')

        self.assertEqual(post.content_type, SourceFormat.PLAIN)
        self.assertIn('data-tag="django"', post.content)
        self.assertIn('href="https://example.test/tag/django"', post.content)
        self.assertTrue(post.content.endswith(' &lt;3'))
        self.assertEqual([tag.name for tag in post.tags.all()], ['django'])
        self.assertEqual(Hashtag.objects.count(), 1)
        self.assertEqual(set(post.mentioned_users.all()), {self.alice, self.bob})

    def test_publish_plain_post_with_quoted_tokens(self):
        post = publish_post(self.alice, '"#Python" rocks, says "@bob"')

        self.assertEqual([tag.name for tag in post.tags.all()], ['python'])
        self.assertEqual(list(post.mentioned_users.all()), [self.bob])
        self.assertTrue(post.content.startswith('&quot;<a class="hashtag"'))

    def test_mentioned_users_are_notified(self):
        post = publish_post(self.alice, 'Hello @bob and @alice')

        notification = Notification.objects.get()
        self.assertEqual(notification.user, self.bob)
        self.assertEqual(notification.post, post)
        self.assertEqual(notification.notification_type, Notification.NotificationType.MENTION)
        self.assertIn('Alice', notification.title)
        self.assertEqual(len(mail.outbox), 0)

    @override_settings(ENABLE_EMAIL_NOTIFICATIONS=True)
    def test_email_notification(self):
        post = publish_post(self.alice, 'ping @bob @carol', post_url='https://example.test/posts/1/')

        # carol has no email address
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['bob@example.com'])
        self.assertIn(f'#{post.pk}', mail.outbox[0].subject)
        self.assertIn('https://example.test/posts/1/', mail.outbox[0].body)

    def test_safe_mention_notifies_leading_mentions_only(self):
        post = publish_post(self.alice, '@bob hi @carol', safe_mention=True)

        self.assertTrue(post.safe_mention)
        self.assertEqual(list(post.mentioned_users.all()), [self.bob])
        self.assertEqual(Notification.objects.filter(user=self.carol).count(), 0)
        self.assertTrue(post.content.endswith(' hi @carol'))

    def test_publish_markdown_post(self):
        post = publish_post(self.alice, '**hi** @bob', SourceFormat.MARKDOWN)

        self.assertIn('<strong>hi</strong>', post.content)
        self.assertIn('@<span>bob</span>', post.content)
        self.assertEqual(list(post.mentioned_users.all()), [self.bob])

    def test_unsupported_content_type(self):
        with self.assertRaises(UnsupportedContentType):
            publish_post(self.alice, 'hello', 'text/rtf')
        self.assertEqual(Post.objects.count(), 0)

    def test_summary(self):
        post = publish_post(self.alice, 'word ' * 40)
        self.assertEqual(len(post.summary), 80)
        self.assertTrue(post.summary.endswith('...'))
        self.assertIn(post.summary, str(post))


@override_settings(SITE_URL='https://example.test', SITE_HOST='example.test')
class PostViewTest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = Client()
        self.alice = User.objects.create_user(username='alice', password='testpass123')
        self.bob = User.objects.create_user(username='bob', password='testpass123')

    def test_create_requires_login(self):
        response = self.client.post(reverse('posts:create'), {'source': 'hi'})
        self.assertEqual(response.status_code, 302)
        self.assertEqual(Post.objects.count(), 0)

    def test_create_post(self):
        self.client.login(username='alice', password='testpass123')
        response = self.client.post(reverse('posts:create'), {'source': 'hi #Tag @bob'})
        self.assertEqual(response.status_code, 201)

        data = response.json()
        post = Post.objects.get()
        self.assertEqual(data['id'], post.pk)
        self.assertEqual(data['content_type'], 'text/plain')
        self.assertEqual(data['tags'], ['tag'])
        self.assertEqual(data['mentions'], ['bob'])
        self.assertEqual(data['url'], f'http://testserver/posts/{post.pk}/')

    def test_create_rejects_empty_post(self):
        self.client.login(username='alice', password='testpass123')
        response = self.client.post(reverse('posts:create'), {'source': '   '})
        self.assertEqual(response.status_code, 400)
        self.assertIn('source', response.json()['errors'])

    def test_create_rejects_unknown_content_type(self):
        self.client.login(username='alice', password='testpass123')
        response = self.client.post(reverse('posts:create'), {'source': 'hi', 'content_type': 'text/rtf'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('content_type', response.json()['errors'])

    def test_create_requires_post(self):
        self.client.login(username='alice', password='testpass123')
        response = self.client.get(reverse('posts:create'))
        self.assertEqual(response.status_code, 405)

    def test_post_detail(self):
        post = publish_post(self.alice, 'hello https://x.test')
        response = self.client.get(reverse('posts:detail', kwargs={'pk': post.pk}))
        self.assertEqual(response.status_code, 200)
        self.assertIn('<a href="https://x.test" rel="ugc">https://x.test</a>', response.json()['content'])

    def test_tag_feed(self):
        self.assertEqual(reverse('tag_feed', kwargs={'tag': 'django'}), '/tag/django')
        post = publish_post(self.alice, 'I like #Django')
        publish_post(self.alice, 'no tags here')

        response = self.client.get(reverse('tag_feed', kwargs={'tag': 'DJANGO'}))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([p['id'] for p in response.json()['posts']], [post.pk])

        response = self.client.get(reverse('tag_feed', kwargs={'tag': 'unknown'}))
        self.assertEqual(response.status_code, 404)

    def test_tag_feed_with_slash_in_tag(self):
        post = publish_post(self.alice, 'read #a/b')
        hashtag = Hashtag.objects.get()
        self.assertEqual(hashtag.name, 'a/b')
        self.assertEqual(hashtag.get_absolute_url(), '/tag/a/b')
        self.assertIn('href="https://example.test/tag/a/b"', post.content)

        response = self.client.get(hashtag.get_absolute_url())
        self.assertEqual(response.status_code, 200)
        self.assertEqual([p['id'] for p in response.json()['posts']], [post.pk])

    def test_rerender_by_other_user_is_forbidden(self):
        post = publish_post(self.alice, 'hello')
        self.client.login(username='bob', password='testpass123')
        response = self.client.post(reverse('posts:rerender', kwargs={'pk': post.pk}))
        self.assertEqual(response.status_code, 403)

    def test_rerender_by_author(self):
        post = publish_post(self.alice, '#fresh')
        Post.objects.filter(pk=post.pk).update(content='stale')
        self.client.login(username='alice', password='testpass123')

        response = self.client.post(reverse('posts:rerender', kwargs={'pk': post.pk}))
        self.assertEqual(response.status_code, 200)
        post.refresh_from_db()
        self.assertIn('class="hashtag"', post.content)


class NotificationViewTest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = Client()
        self.alice = User.objects.create_user(username='alice', password='testpass123')
        self.bob = User.objects.create_user(username='bob', password='testpass123')
        self.post = publish_post(self.alice, 'hey @bob')

    def test_notification_list(self):
        self.client.login(username='bob', password='testpass123')
        response = self.client.get(reverse('notifications'))
        self.assertEqual(response.status_code, 200)

        data = response.json()
        self.assertEqual(data['unread'], 1)
        self.assertEqual(data['notifications'][0]['post'], self.post.pk)

    def test_notification_list_requires_login(self):
        response = self.client.get(reverse('notifications'))
        self.assertEqual(response.status_code, 302)

    def test_mark_read(self):
        notification = Notification.objects.get(user=self.bob)
        self.client.login(username='bob', password='testpass123')
        response = self.client.post(reverse('mark_notification_read', kwargs={'pk': notification.pk}))
        self.assertEqual(response.status_code, 200)
        notification.refresh_from_db()
        self.assertTrue(notification.is_read)

    def test_mark_read_of_other_user(self):
        notification = Notification.objects.get(user=self.bob)
        self.client.login(username='alice', password='testpass123')
        response = self.client.post(reverse('mark_notification_read', kwargs={'pk': notification.pk}))
        self.assertEqual(response.status_code, 404)

    def test_context_processor(self):
        request = RequestFactory().get('/')
        request.user = self.bob
        self.assertEqual(notifications(request), {'unread_notifications_count': 1})
        request.user = AnonymousUser()
        self.assertEqual(notifications(request), {'unread_notifications_count': 0})


class RerenderPostsCommandTest(TestCase):
    def setUp(self):
        cache.clear()
        self.alice = User.objects.create_user(username='alice')
        self.post = Post.objects.create(author=self.alice, source='#fresh', content='')

    def test_requires_confirm(self):
        out = StringIO()
        call_command('rerender_posts', stdout=out)
        self.assertIn('--confirm', out.getvalue())
        self.post.refresh_from_db()
        self.assertEqual(self.post.content, '')

    def test_rerender(self):
        out = StringIO()
        call_command('rerender_posts', '--confirm', stdout=out)
        self.assertIn('Re-rendered 1 posts.', out.getvalue())
        self.post.refresh_from_db()
        self.assertIn('data-tag="fresh"', self.post.content)
        self.assertEqual([tag.name for tag in self.post.tags.all()], ['fresh'])

    def test_filter_by_author(self):
        out = StringIO()
        call_command('rerender_posts', '--confirm', '--author', 'nobody', stdout=out)
        self.assertIn('No posts to re-render.', out.getvalue())
