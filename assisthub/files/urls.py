from django.urls import path
from .views import file_list_upload, file_delete, file_delete_by_path, file_link, entity_files

urlpatterns = [
    path('files/', file_list_upload, name='file-list-upload'),
    path('files/delete-by-path/', file_delete_by_path, name='file-delete-by-path'),
    path('files/<int:pk>/', file_delete, name='file-delete'),
    path('files/<int:pk>/link/', file_link, name='file-link'),
    path('files/<str:linked_type>/<int:linked_id>/', entity_files, name='entity-files'),
]
