from django.urls import path
from .views import project_list_create, project_detail

urlpatterns = [
    path('projects/', project_list_create, name='project-list-create'),
    path('projects/<int:pk>/', project_detail, name='project-detail'),
]
