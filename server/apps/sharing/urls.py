"""URL routes for sharing app."""

from django.urls import path

from server.apps.sharing import views

app_name = 'sharing'

urlpatterns = [
    path('upload', views.upload, name='upload'),
    path('file/<str:file_id>/metadata', views.file_metadata, name='metadata'),
    path('file/<str:file_id>/blob', views.file_blob, name='blob'),
    path('myfiles', views.my_files, name='my_files'),
    path('myfiles/<str:file_id>', views.delete_my_file, name='delete'),
]
