from unittest import mock

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import DatabaseError
from django.test import Client, TestCase, override_settings
from django.urls import reverse

from formatting.conf import LinkifyOptions
from formatting.linkify import linkify

from .models import UserProfile
from .resolver import HandleResolver

User = get_user_model()


@override_settings(SITE_URL='https://example.test', SITE_HOST='example.test')
class HandleResolverTest(TestCase):
    def setUp(self):
        cache.clear()
        self.resolver = HandleResolver()
        self.user = User.objects.create_user(username='alice', password='testpass123')

    def test_profile_created_with_user(self):
        self.assertTrue(UserProfile.objects.filter(user=self.user).exists())
        self.assertTrue(self.user.profile.is_local)

    def test_lookup_local_user(self):
        profile = self.resolver.lookup('alice')
        self.assertEqual(profile.id, self.user.pk)
        self.assertEqual(profile.nickname, 'alice')
        self.assertEqual(profile.url, 'https://example.test/users/alice/')
        self.assertEqual(profile.full_nickname, 'alice@example.test')

    def test_lookup_is_case_insensitive(self):
        self.assertEqual(self.resolver.lookup('ALICE').id, self.user.pk)

    def test_local_host_suffix_is_ignored(self):
        self.assertEqual(self.resolver.lookup('alice@example.test').id, self.user.pk)
        self.assertEqual(self.resolver.lookup('@alice').id, self.user.pk)

    def test_remote_account(self):
        remote = User.objects.create_user(username='bob@remote.test')
        remote.profile.uri = 'https://remote.test/@bob'
        remote.profile.save()

        profile = self.resolver.lookup('bob@remote.test')
        self.assertEqual(profile.url, 'https://remote.test/@bob')
        self.assertEqual(profile.full_nickname, 'bob@remote.test')
        self.assertEqual(profile.local_nickname, 'bob')
        self.assertIsNone(self.resolver.lookup('bob'))

    def test_lookups_are_cached(self):
        self.resolver.lookup('alice')
        with self.assertNumQueries(0):
            self.assertEqual(self.resolver.lookup('alice').id, self.user.pk)

    def test_misses_are_cached_until_user_is_created(self):
        self.assertIsNone(self.resolver.lookup('ghost'))
        with self.assertNumQueries(0):
            self.assertIsNone(self.resolver.lookup('ghost'))

        ghost = User.objects.create_user(username='ghost')
        self.assertEqual(self.resolver.lookup('ghost').id, ghost.pk)

    def test_profile_change_invalidates_cache(self):
        self.resolver.lookup('alice')
        self.user.profile.uri = 'https://elsewhere.test/alice'
        self.user.profile.save()
        self.assertEqual(self.resolver.lookup('alice').url, 'https://elsewhere.test/alice')

    def test_overlong_handle_is_a_miss(self):
        with self.assertNumQueries(0):
            self.assertIsNone(self.resolver.lookup('a' * 500))
        self.assertIsNone(self.resolver.lookup(''))

    def test_database_error_is_a_miss(self):
        with mock.patch.object(HandleResolver, 'fetch', side_effect=DatabaseError('gone')):
            with self.assertLogs('accounts.resolver', level='WARNING'):
                self.assertIsNone(self.resolver.lookup('alice'))
        # Failures are not cached
        self.assertEqual(self.resolver.lookup('alice').id, self.user.pk)

    def test_linkify_with_directory(self):
        html, mentions, _tags = linkify('hi @alice and @nobody', LinkifyOptions())
        self.assertEqual(mentions[0][0], '@alice')
        self.assertEqual(mentions[0][1].id, self.user.pk)
        self.assertIn(f'data-user="{self.user.pk}"', html)
        self.assertIn('href="https://example.test/users/alice/"', html)
        self.assertTrue(html.endswith(' and @nobody'))


@override_settings(SITE_URL='https://example.test', SITE_HOST='example.test')
class ProfileViewTest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = Client()
        self.user = User.objects.create_user(
            username='alice',
            password='testpass123',
            first_name='Alice',
            last_name='Smith'
        )

    def test_profile_detail(self):
        response = self.client.get(reverse('accounts:profile', kwargs={'username': 'alice'}))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            'id': self.user.pk,
            'nickname': 'alice',
            'full_nickname': 'alice@example.test',
            'url': 'https://example.test/users/alice/',
        })

    def test_profile_detail_unknown_user(self):
        response = self.client.get(reverse('accounts:profile', kwargs={'username': 'nobody'}))
        self.assertEqual(response.status_code, 404)

    def test_user_search_requires_login(self):
        response = self.client.get(reverse('accounts:user_search'), {'q': 'ali'})
        self.assertEqual(response.status_code, 302)

    def test_user_search(self):
        User.objects.create_user(username='bob')
        self.client.login(username='alice', password='testpass123')

        response = self.client.get(reverse('accounts:user_search'), {'q': '@smi'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'users': [{'username': 'alice', 'name': 'Alice Smith'}]})

        response = self.client.get(reverse('accounts:user_search'), {'q': ''})
        self.assertEqual(response.json(), {'users': []})
