"""Template context for the posts app."""


def notifications(request):
    """Unread mention count for the navigation badge."""
    user = getattr(request, 'user', None)
    if user is None or not user.is_authenticated:
        return {'unread_notifications_count': 0}
    return {'unread_notifications_count': user.notifications.filter(is_read=False).count()}
