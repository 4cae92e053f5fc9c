from django.urls import path
from .views import (
    tag_list_create, tag_detail, tag_entities, tag_associations, tag_consistency
)

urlpatterns = [
    path('tags/', tag_list_create, name='tag-list-create'),
    path('tags/consistency/', tag_consistency, name='tag-consistency'),
    path('tags/<int:pk>/', tag_detail, name='tag-detail'),
    path('tags/<int:pk>/entities/', tag_entities, name='tag-entities'),
    path('tags/<int:pk>/associations/', tag_associations, name='tag-associations'),
]
