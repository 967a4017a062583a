from django.contrib.auth import get_user_model
from django.contrib.auth.decorators import login_required
from django.db.models import Q
from django.http import Http404, JsonResponse

from .resolver import HandleResolver

User = get_user_model()


def profile_detail(request, username):
    """Public profile, the target of mention links."""
    profile = HandleResolver().lookup(username)
    if profile is None:
        raise Http404('No such user')

    return JsonResponse({
        'id': profile.id,
        'nickname': profile.local_nickname,
        'full_nickname': profile.full_nickname,
        'url': profile.url,
    })


@login_required
def user_search(request):
    """API endpoint to search users for @mention autocomplete."""
    q = request.GET.get('q', '').strip().lstrip('@')
    if len(q) < 1:
        return JsonResponse({'users': []})

    users = User.objects.filter(
        Q(username__icontains=q) |
        Q(first_name__icontains=q) |
        Q(last_name__icontains=q)
    ).order_by('username')[:10]

    return JsonResponse({
        'users': [
            {
                'username': u.username,
                'name': u.get_full_name() or u.username,
            }
            for u in users
        ]
    })
