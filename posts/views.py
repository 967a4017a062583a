from django.contrib.auth.decorators import login_required
from django.contrib.auth.mixins import LoginRequiredMixin
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.urls import reverse
from django.views.decorators.http import require_POST
from django.views.generic import ListView

from .forms import PostForm
from .models import Hashtag, Notification, Post
from .services import publish_post, rerender_post


def post_payload(post):
    return {
        'id': post.pk,
        'author': post.author.username,
        'content_type': post.content_type,
        'content': post.content,
        'summary': post.summary,
        'tags': [tag.name for tag in post.tags.all()],
        'mentions': [user.username for user in post.mentioned_users.all()],
        'created_at': post.created_at.isoformat(),
        'url': post.get_absolute_url(),
    }


@login_required
@require_POST
def create_post(request):
    """Publish a post from form data."""
    form = PostForm(request.POST)
    if not form.is_valid():
        return JsonResponse({'errors': form.errors}, status=400)

    post = publish_post(
        request.user,
        form.cleaned_data['source'],
        form.cleaned_data['content_type'],
        safe_mention=form.cleaned_data['safe_mention'],
    )
    post_url = request.build_absolute_uri(reverse('posts:detail', kwargs={'pk': post.pk}))
    return JsonResponse({**post_payload(post), 'url': post_url}, status=201)


def post_detail(request, pk):
    post = get_object_or_404(Post.objects.select_related('author'), pk=pk)
    return JsonResponse(post_payload(post))


@login_required
@require_POST
def rerender(request, pk):
    """Render a post again with the current formatter settings (author or staff only)."""
    post = get_object_or_404(Post, pk=pk)
    if post.author != request.user and not request.user.is_staff:
        return JsonResponse({'error': 'forbidden'}, status=403)
    rerender_post(post)
    return JsonResponse(post_payload(post))


def tag_feed(request, tag):
    """Posts carrying a hashtag, newest first."""
    hashtag = get_object_or_404(Hashtag, name=tag.lower())
    posts = hashtag.posts.select_related('author')[:20]
    return JsonResponse({
        'tag': hashtag.name,
        'posts': [post_payload(post) for post in posts],
    })


class NotificationListView(LoginRequiredMixin, ListView):
    """The current user's notifications as JSON."""
    model = Notification
    paginate_by = 50

    def get_queryset(self):
        return Notification.objects.filter(user=self.request.user).select_related('post')

    def render_to_response(self, context, **response_kwargs):
        notifications = context['object_list']
        return JsonResponse({
            'unread': self.get_queryset().filter(is_read=False).count(),
            'notifications': [
                {
                    'id': n.pk,
                    'type': n.notification_type,
                    'title': n.title,
                    'message': n.message,
                    'post': n.post_id,
                    'is_read': n.is_read,
                }
                for n in notifications
            ],
        })


@login_required
@require_POST
def mark_notification_read(request, pk):
    notification = get_object_or_404(Notification, pk=pk, user=request.user)
    notification.is_read = True
    notification.save(update_fields=['is_read'])
    return JsonResponse({'id': notification.pk, 'is_read': True})
