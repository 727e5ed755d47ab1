"""URL routes for guard app."""

from django.urls import path

from server.apps.guard import views

app_name = 'guard'

urlpatterns = [
    path('register', views.register, name='register'),
    path('login', views.login_view, name='login'),
    path('logout', views.logout_view, name='logout'),
    path('csrf', views.csrf_token, name='csrf'),
]
