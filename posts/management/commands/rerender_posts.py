from django.core.management.base import BaseCommand

from posts.models import Post
from posts.services import rerender_post


class Command(BaseCommand):
    help = 'Render stored posts again with the current formatter settings'

    def add_arguments(self, parser):
        parser.add_argument(
            '--author',
            help='Only re-render posts by this username',
        )
        parser.add_argument(
            '--confirm',
            action='store_true',
            help='Confirm re-rendering without prompt',
        )

    def handle(self, *args, **options):
        posts = Post.objects.select_related('author')
        if options['author']:
            posts = posts.filter(author__username=options['author'])
        count = posts.count()

        if count == 0:
            self.stdout.write('No posts to re-render.')
            return

        if not options['confirm']:
            self.stdout.write(f'This will re-render {count} posts.')
            self.stdout.write('Run with --confirm to proceed.')
            return

        for post in posts.iterator():
            rerender_post(post)
        self.stdout.write(self.style.SUCCESS(f'Re-rendered {count} posts.'))
