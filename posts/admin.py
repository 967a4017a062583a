from django.contrib import admin

from .models import Hashtag, Notification, Post


class NotificationInline(admin.TabularInline):
    model = Notification
    extra = 0
    readonly_fields = ['created_at', 'user', 'notification_type']
    ordering = ['-created_at']


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ['id', 'author', 'content_type', 'safe_mention', 'created_at']
    list_filter = ['content_type', 'safe_mention']
    search_fields = ['source', 'author__username']
    ordering = ['-created_at']
    date_hierarchy = 'created_at'
    filter_horizontal = ['tags', 'mentioned_users']
    readonly_fields = ['content', 'created_at', 'updated_at']
    inlines = [NotificationInline]


@admin.register(Hashtag)
class HashtagAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['user', 'notification_type', 'title', 'is_read', 'created_at']
    list_filter = ['notification_type', 'is_read']
    search_fields = ['title', 'message', 'user__username']
    ordering = ['-created_at']
