from django.urls import path

from . import views

app_name = 'accounts'

urlpatterns = [
    path('api/search/', views.user_search, name='user_search'),
    path('<str:username>/', views.profile_detail, name='profile'),
]
