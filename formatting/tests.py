from django.template import Context, Template
from django.test import SimpleTestCase, override_settings

from accounts.resolver import Profile

from .conf import LinkifyOptions, get_options
from .escaping import ContentType, UnsupportedContentType, escape
from .linkify import linkify, mentions_escape
from .pipeline import format_input
from .safe_mention import has_mention, split_safe
from .scanner import SpanKind, scan
from .truncation import grapheme_length, truncate


class FakeResolver:
    """Dict-backed stand-in for the user directory."""

    def __init__(self, *nicknames):
        self.profiles = {
            nickname.lower(): Profile(id=pk, nickname=nickname, url=f'https://example.test/users/{nickname}')
            for pk, nickname in enumerate(nicknames, start=1)
        }
        self.calls = []

    def lookup(self, handle):
        self.calls.append(handle)
        return self.profiles.get(handle.lower())


def mention_html(pk, nickname, display=None):
    return (
        f'<span class="h-card"><a class="u-url mention" data-user="{pk}" '
        f'href="https://example.test/users/{nickname}" rel="ugc">@<span>{display or nickname}</span></a></span>'
    )


def hashtag_html(text, tag):
    return f'<a class="hashtag" data-tag="{tag}" href="https://example.test/tag/{tag}" rel="tag ugc">{text}</a>'


class ScannerTest(SimpleTestCase):
    def kinds(self, text, **kwargs):
        return [(span.kind, span.text_of(text)) for span in scan(text, **kwargs)]

    def test_empty_text(self):
        self.assertEqual(scan(''), [])

    def test_spans_cover_text_exactly(self):
        samples = [
            'hello @alice and #tag http://x.test',
            '  (http://x.test/a_(b)) @bob, #c. ',
            '<p>@alice <a href="http://x.test">@bob</a></p>',
            'mail alice@example.com or xmpp:room@conf.test',
            '@ # <', '\x00\x01@�#​',
        ]
        for text in samples:
            spans = scan(text)
            self.assertEqual(''.join(span.text_of(text) for span in spans), text)
            for previous, current in zip(spans, spans[1:]):
                self.assertEqual(previous.end, current.start)

    def test_classifies_tokens(self):
        self.assertEqual(self.kinds('hello @alice and #tag http://x.test'), [
            (SpanKind.PLAIN, 'hello '),
            (SpanKind.MENTION, '@alice'),
            (SpanKind.PLAIN, ' and '),
            (SpanKind.HASHTAG, '#tag'),
            (SpanKind.PLAIN, ' '),
            (SpanKind.URL, 'http://x.test'),
        ])

    def test_trailing_punctuation_is_plain(self):
        self.assertEqual(self.kinds('see x.test, @bob.'), [
            (SpanKind.PLAIN, 'see '),
            (SpanKind.URL, 'x.test'),
            (SpanKind.PLAIN, ', '),
            (SpanKind.MENTION, '@bob'),
            (SpanKind.PLAIN, '.'),
        ])

    def test_unbalanced_closing_bracket_is_plain(self):
        self.assertEqual(self.kinds('(http://x.test)'), [
            (SpanKind.PLAIN, '('),
            (SpanKind.URL, 'http://x.test'),
            (SpanKind.PLAIN, ')'),
        ])
        self.assertEqual(self.kinds('http://x.test/wiki/Foo_(bar)'), [
            (SpanKind.URL, 'http://x.test/wiki/Foo_(bar)'),
        ])

    def test_at_sign_inside_word_starts_mention(self):
        self.assertEqual(self.kinds('mail alice@example.com'), [
            (SpanKind.PLAIN, 'mail alice'),
            (SpanKind.MENTION, '@example.com'),
        ])

    def test_hashtag_only_at_word_start(self):
        self.assertEqual(self.kinds('foo#bar'), [(SpanKind.PLAIN, 'foo#bar')])

    def test_lone_sigils_are_plain(self):
        self.assertEqual(self.kinds('@ # @. #!'), [(SpanKind.PLAIN, '@ # @. #!')])

    def test_bare_domain_needs_alphabetic_tld(self):
        self.assertEqual(self.kinds('e.g. version 1.2.3'), [(SpanKind.PLAIN, 'e.g. version 1.2.3')])

    def test_scheme_opaque_only_with_extra(self):
        self.assertEqual(self.kinds('xmpp:alice', extra=True), [(SpanKind.URL, 'xmpp:alice')])
        self.assertEqual(self.kinds('xmpp:alice', extra=False), [(SpanKind.PLAIN, 'xmpp:alice')])

    def test_markup_is_plain(self):
        self.assertEqual(self.kinds('<p>#tag</p>'), [
            (SpanKind.PLAIN, '<p>'),
            (SpanKind.HASHTAG, '#tag'),
            (SpanKind.PLAIN, '</p>'),
        ])

    def test_link_and_code_bodies_are_skipped(self):
        text = '<a href="http://x.test">@alice</a> <code>#nope</code> @bob'
        self.assertEqual(self.kinds(text), [
            (SpanKind.PLAIN, '<a href="http://x.test">@alice</a> <code>#nope</code> '),
            (SpanKind.MENTION, '@bob'),
        ])


@override_settings(SITE_URL='https://example.test', SITE_HOST='example.test')
class LinkifyTest(SimpleTestCase):
    def setUp(self):
        self.options = LinkifyOptions()
        self.resolver = FakeResolver('alice', 'bob', 'carol', 'bob@remote.test', 'user_name.x')

    def test_text_without_tokens_is_unchanged(self):
        text = 'Nothing to see here, move along.'
        self.assertEqual(linkify(text, self.options, self.resolver), (text, [], []))

    def test_empty_text(self):
        self.assertEqual(linkify('', self.options, self.resolver), ('', [], []))

    def test_disabled_classes_pass_through(self):
        options = LinkifyOptions(mention=False, hashtag=False, url=False)
        text = '@alice #tag http://x.test xmpp:me'
        self.assertEqual(linkify(text, options, self.resolver), (text, [], []))
        self.assertEqual(self.resolver.calls, [])

    def test_mention_links_resolved_profile(self):
        html, mentions, tags = linkify('hi @alice', self.options, self.resolver)
        self.assertEqual(html, 'hi ' + mention_html(1, 'alice'))
        self.assertEqual(mentions, [('@alice', self.resolver.profiles['alice'])])
        self.assertEqual(tags, [])

    def test_full_mentions_format(self):
        options = LinkifyOptions(mentions_format='full')
        html, _mentions, _tags = linkify('@alice', options, self.resolver)
        self.assertEqual(html, mention_html(1, 'alice', 'alice@example.test'))

    def test_remote_mention_uses_local_nickname(self):
        html, mentions, _tags = linkify('hi @bob@remote.test', self.options, self.resolver)
        self.assertIn('@<span>bob</span>', html)
        self.assertEqual(mentions[0][0], '@bob@remote.test')

    def test_unknown_mention_passes_through(self):
        html, mentions, _tags = linkify('hi @nobody!', self.options, self.resolver)
        self.assertEqual(html, 'hi @nobody!')
        self.assertEqual(mentions, [])
        self.assertEqual(self.resolver.calls, ['nobody'])

    def test_at_sign_in_email_is_looked_up_as_mention(self):
        html, mentions, _tags = linkify('write alice@example.com', self.options, self.resolver)
        self.assertEqual(html, 'write alice@example.com')
        self.assertEqual(mentions, [])
        self.assertEqual(self.resolver.calls, ['example.com'])

    def test_duplicate_mentions_are_recorded_once(self):
        _html, mentions, _tags = linkify('@alice @bob @alice', self.options, self.resolver)
        self.assertEqual([raw for raw, _profile in mentions], ['@alice', '@bob'])

    def test_hashtags_merge_case_insensitively(self):
        html, mentions, tags = linkify('#Foo bar #foo', self.options, self.resolver)
        self.assertEqual(tags, [('#Foo', 'foo')])
        self.assertEqual(mentions, [])
        self.assertEqual(html, hashtag_html('#Foo', 'foo') + ' bar ' + hashtag_html('#foo', 'foo'))

    def test_url_link(self):
        html, _mentions, _tags = linkify('go to x.test/path now', self.options, self.resolver)
        self.assertEqual(html, 'go to <a href="http://x.test/path" rel="ugc">x.test/path</a> now')

    def test_url_link_is_escaped(self):
        html, _mentions, _tags = linkify('http://x.test/?a=1&b=2', self.options, self.resolver)
        self.assertEqual(html, '<a href="http://x.test/?a=1&amp;b=2" rel="ugc">http://x.test/?a=1&amp;b=2</a>')

    def test_url_rendering_options(self):
        options = LinkifyOptions(strip_prefix=True, new_window=True, link_class='link')
        html, _mentions, _tags = linkify('https://x.test', options, self.resolver)
        self.assertEqual(html, '<a class="link" href="https://x.test" rel="ugc" target="_blank">x.test</a>')

    def test_url_display_truncation(self):
        options = LinkifyOptions(truncate=10)
        html, _mentions, _tags = linkify('https://example.test/long/path', options, self.resolver)
        self.assertEqual(html, '<a href="https://example.test/long/path" rel="ugc">https:/...</a>')

    def test_custom_handler_receives_surrounding_word(self):
        seen = []

        def shout(matched, buffer, options, acc):
            seen.append(buffer)
            return matched.upper(), acc

        options = LinkifyOptions(hashtag_handler=shout)
        html, _mentions, tags = linkify('say (#foo), ok', options, self.resolver)
        self.assertEqual(html, 'say (#FOO), ok')
        self.assertEqual(seen, ['(#foo),'])
        self.assertEqual(tags, [])

    def test_safe_mention_links_leading_run_only(self):
        options = LinkifyOptions(safe_mention=True)
        html, mentions, _tags = linkify('@alice @bob hello @carol', options, self.resolver)
        self.assertEqual([raw for raw, _profile in mentions], ['@alice', '@bob'])
        self.assertTrue(html.endswith(' hello @carol'))
        self.assertNotIn('carol', self.resolver.calls)

    def test_safe_mention_without_leading_mention(self):
        options = LinkifyOptions(safe_mention=True)
        html, mentions, _tags = linkify('hi @alice', options, self.resolver)
        self.assertEqual(html, 'hi @alice')
        self.assertEqual(mentions, [])

    def test_safe_mention_still_collects_hashtags(self):
        options = LinkifyOptions(safe_mention=True)
        _html, mentions, tags = linkify('@alice #Tag @bob ', options, self.resolver)
        self.assertEqual([raw for raw, _profile in mentions], ['@alice'])
        self.assertEqual(tags, [('#Tag', 'tag')])

    def test_safe_mention_through_markup(self):
        options = LinkifyOptions(safe_mention=True)
        html, mentions, _tags = linkify('<p>@alice hi @bob</p>', options, self.resolver)
        self.assertEqual([raw for raw, _profile in mentions], ['@alice'])
        self.assertEqual(html, '<p>' + mention_html(1, 'alice') + ' hi @bob</p>')

    def test_safe_mention_ignores_mid_word_mention(self):
        options = LinkifyOptions(safe_mention=True)
        html, mentions, _tags = linkify('hi@alice hello', options, self.resolver)
        self.assertEqual(html, 'hi@alice hello')
        self.assertEqual(mentions, [])
        self.assertEqual(self.resolver.calls, [])


class SafeMentionTest(SimpleTestCase):
    def test_split_leading_mentions(self):
        self.assertEqual(split_safe('  @a @b rest @c'), ('  @a @b ', 'rest @c'))

    def test_split_through_tags(self):
        self.assertEqual(split_safe('<p> <span>@a </span>x'), ('<p> <span>@a ', '</span>x'))

    def test_no_leading_mention(self):
        self.assertEqual(split_safe('hi @a'), ('', 'hi @a'))
        self.assertEqual(split_safe(''), ('', ''))

    def test_mention_must_be_followed_by_whitespace(self):
        self.assertEqual(split_safe('@a'), ('', '@a'))
        self.assertEqual(split_safe('@a @b'), ('@a ', '@b'))

    def test_has_mention(self):
        self.assertTrue(has_mention('@a'))
        self.assertTrue(has_mention('cc (@a)'))
        self.assertTrue(has_mention('mail a@b.test'))
        self.assertFalse(has_mention('no handles here'))
        self.assertFalse(has_mention(''))

    def test_split_plain_text_does_not_skip_tags(self):
        self.assertEqual(split_safe('<p> @a rest', markup=False), ('', '<p> @a rest'))


class MentionsEscapeTest(SimpleTestCase):
    def test_escapes_known_mentions_only(self):
        resolver = FakeResolver('user_name.x')
        text = 'hi @user_name.x and @nobody_here #tag_x http://x.test/a_b'
        self.assertEqual(
            mentions_escape(text, LinkifyOptions(), resolver),
            r'hi @user\_name\.x and @nobody_here #tag_x http://x.test/a_b',
        )

    def test_empty_text(self):
        self.assertEqual(mentions_escape('', LinkifyOptions(), FakeResolver()), '')


@override_settings(SITE_URL='https://example.test', SITE_HOST='example.test')
class EscapeTest(SimpleTestCase):
    def test_plain_keeps_links_verbatim(self):
        self.assertEqual(escape('visit http://x.test now', 'text/plain'), 'visit http://x.test now')
        self.assertEqual(
            escape('visit <b>http://x.test/?a=1&b=2</b>', 'text/plain'),
            'visit &lt;b&gt;http://x.test/?a=1&b=2&lt;/b&gt;',
        )

    def test_plain_escapes_markup_and_quotes(self):
        self.assertEqual(escape('<script>', 'text/plain'), '&lt;script&gt;')
        self.assertEqual(escape('"hi" & \'bye\'', ContentType.PLAIN), '&quot;hi&quot; &amp; &#x27;bye&#x27;')

    def test_plain_escaping_twice_is_escaping_once(self):
        once = escape('<b>Tom & Jerry</b>', 'text/plain')
        self.assertEqual(escape(once, 'text/plain'), once)

    def test_html_strips_disallowed_markup(self):
        result = escape('<p onclick="x()">hi <script>alert(1)</script></p>', 'text/html')
        self.assertNotIn('<script', result)
        self.assertNotIn('onclick', result)
        self.assertTrue(result.startswith('<p>hi '))

    def test_html_keeps_linkified_markup(self):
        html, _mentions, _tags = linkify('@alice #tag', LinkifyOptions(), FakeResolver('alice'))
        result = escape(html, 'text/html')
        for fragment in ['class="u-url mention"', 'data-user="1"', 'class="hashtag"', 'data-tag="tag"']:
            self.assertIn(fragment, result)

    def test_mfm_is_filtered_like_html(self):
        text = '<b>bold</b><iframe src="x"></iframe>'
        self.assertEqual(escape(text, 'text/x.misskeymarkdown'), escape(text, 'text/html'))

    def test_unknown_content_type_is_rejected(self):
        with self.assertRaises(UnsupportedContentType):
            escape('text', 'text/rtf')
        with self.assertRaises(ValueError):
            ContentType.parse('')

    def test_empty_text(self):
        self.assertEqual(escape('', 'text/plain'), '')
        self.assertEqual(escape(None, 'text/html'), '')


class TruncateTest(SimpleTestCase):
    def test_truncates_with_omission(self):
        self.assertEqual(truncate('hello world', 8, '...'), 'hello...')

    def test_short_text_is_unchanged(self):
        self.assertEqual(truncate('short', 200, '...'), 'short')

    def test_retruncating_is_noop(self):
        once = truncate('hello world', 8)
        self.assertEqual(truncate(once, 8), once)
        self.assertEqual(truncate(truncate('short', 200), 200), 'short')

    def test_text_of_exactly_max_length_is_truncated(self):
        self.assertEqual(truncate('abcde', 5, '...'), 'ab...')

    def test_trailing_blanks_are_dropped(self):
        self.assertEqual(truncate('short   ', 6), 'short')
        self.assertEqual(truncate('abc \t', 10), 'abc')
        self.assertEqual(truncate('abc\n', 10), 'abc\n')

    def test_counts_grapheme_clusters(self):
        self.assertEqual(grapheme_length('é'), 1)
        self.assertEqual(truncate('é' * 3, 4), 'é' * 3)
        thumbs = '\U0001F44D\U0001F3FD'
        self.assertEqual(truncate(thumbs * 3, 3, '…'), thumbs * 2 + '…')

    def test_omission_longer_than_budget(self):
        self.assertEqual(truncate('hello world', 2, '...'), '...')


class OptionsTest(SimpleTestCase):
    @override_settings(FORMATTING={'HASHTAG': False, 'MENTIONS_FORMAT': 'full', 'CLASS': 'ext'})
    def test_options_from_settings(self):
        options = LinkifyOptions.from_settings()
        self.assertFalse(options.hashtag)
        self.assertEqual(options.mentions_format, 'full')
        self.assertEqual(options.link_class, 'ext')
        self.assertTrue(options.mention)

    def test_overrides(self):
        options = get_options(LinkifyOptions(), safe_mention=True)
        self.assertTrue(options.safe_mention)
        with self.assertRaises(TypeError):
            LinkifyOptions().merge(colour='red')

    def test_rejects_unknown_mentions_format(self):
        with self.assertRaises(ValueError):
            LinkifyOptions(mentions_format='short')


@override_settings(SITE_URL='https://example.test', SITE_HOST='example.test')
class FormatInputTest(SimpleTestCase):
    def setUp(self):
        self.options = LinkifyOptions()
        self.resolver = FakeResolver('alice', 'user_name')

    def test_plain_text(self):
        html, mentions, _tags = format_input(
            '<b>hi</b> @alice\nsee http://x.test', 'text/plain', self.options, self.resolver
        )
        self.assertEqual(
            html,
            '&lt;b&gt;hi&lt;/b&gt; ' + mention_html(1, 'alice')
            + '<br>see <a href="http://x.test" rel="ugc">http://x.test</a>',
        )
        self.assertEqual(len(mentions), 1)

    def test_html(self):
        html, mentions, _tags = format_input(
            '<p>hi @alice</p><script>x</script>', 'text/html', self.options, self.resolver
        )
        self.assertIn('<p>hi <span class="h-card">', html)
        self.assertNotIn('<script', html)
        self.assertEqual(len(mentions), 1)

    def test_markdown(self):
        html, mentions, _tags = format_input('**hey** @user_name', 'text/markdown', self.options, self.resolver)
        self.assertIn('<strong>hey</strong>', html)
        self.assertIn('@<span>user_name</span>', html)
        self.assertEqual(mentions, [('@user_name', self.resolver.profiles['user_name'])])

    def test_markdown_with_safe_mentions(self):
        options = LinkifyOptions(safe_mention=True)
        _html, mentions, _tags = format_input('@alice hi @user_name', 'text/markdown', options, self.resolver)
        self.assertEqual([raw for raw, _profile in mentions], ['@alice'])

    def test_plain_text_quotes_around_tokens(self):
        resolver = FakeResolver('alice', 'bob')
        html, mentions, tags = format_input(
            '"@alice" and "#Python" and @bob', 'text/plain', self.options, resolver
        )
        self.assertEqual([raw for raw, _profile in mentions], ['@alice', '@bob'])
        self.assertEqual(tags, [('#Python', 'python')])
        self.assertEqual(
            html,
            '&quot;' + mention_html(1, 'alice') + '&quot; and &quot;' + hashtag_html('#Python', 'python')
            + '&quot; and ' + mention_html(2, 'bob'),
        )

    def test_plain_text_apostrophe_in_hashtag(self):
        html, _mentions, tags = format_input("#rust's", 'text/plain', self.options, self.resolver)
        self.assertEqual(tags, [("#rust's", "rust's")])
        self.assertEqual(
            html,
            '<a class="hashtag" data-tag="rust&#x27;s" href="https://example.test/tag/rust%27s" '
            'rel="tag ugc">#rust&#x27;s</a>',
        )

    def test_plain_text_markup_is_escaped_around_tokens(self):
        html, mentions, _tags = format_input(
            '<a href="x">@alice</a> @nobody <b>', 'text/plain', self.options, self.resolver
        )
        self.assertEqual(
            html,
            '&lt;a href=&quot;x&quot;&gt;' + mention_html(1, 'alice') + '&lt;/a&gt; @nobody &lt;b&gt;',
        )
        self.assertEqual(len(mentions), 1)

    def test_plain_text_safe_mentions(self):
        options = LinkifyOptions(safe_mention=True)
        html, mentions, _tags = format_input('@alice "hi" @user_name', 'text/plain', options, self.resolver)
        self.assertEqual([raw for raw, _profile in mentions], ['@alice'])
        self.assertEqual(html, mention_html(1, 'alice') + ' &quot;hi&quot; @user_name')

    def test_unknown_format(self):
        with self.assertRaises(UnsupportedContentType):
            format_input('x', 'application/json', self.options, self.resolver)


@override_settings(SITE_URL='https://example.test')
class TemplateFilterTest(SimpleTestCase):
    def render(self, template, **context):
        return Template('{% load formatting_tags %}' + template).render(Context(context))

    def test_linkify_filter(self):
        self.assertEqual(
            self.render('{{ text|linkify }}', text='<b> #tag'),
            '&lt;b&gt; ' + hashtag_html('#tag', 'tag'),
        )

    def test_truncate_filter(self):
        self.assertEqual(self.render('{{ text|truncate_graphemes:8 }}', text='hello world'), 'hello...')
