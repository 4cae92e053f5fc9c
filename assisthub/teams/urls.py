from django.urls import path
from .views import team_list_create, team_detail

urlpatterns = [
    path('teams/', team_list_create, name='team-list-create'),
    path('teams/<int:pk>/', team_detail, name='team-detail'),
]
