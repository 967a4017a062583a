from django.urls import path

from . import views

app_name = 'posts'

urlpatterns = [
    path('new/', views.create_post, name='create'),
    path('<int:pk>/', views.post_detail, name='detail'),
    path('<int:pk>/rerender/', views.rerender, name='rerender'),
]
