"""URL configuration for postfmt project."""

from django.contrib import admin
from django.urls import include, path

from posts import views as post_views

urlpatterns = [
    path('admin/', admin.site.urls),
    path('posts/', include('posts.urls')),
    path('users/', include('accounts.urls')),
    path('tag/<path:tag>', post_views.tag_feed, name='tag_feed'),
    path('notifications/', post_views.NotificationListView.as_view(), name='notifications'),
    path('notifications/<int:pk>/read/', post_views.mark_notification_read, name='mark_notification_read'),
]
