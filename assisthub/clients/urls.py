from django.urls import path
from .views import client_list_create, client_detail, client_approve, client_geolocate

urlpatterns = [
    path('clients/', client_list_create, name='client-list-create'),
    path('clients/<int:pk>/', client_detail, name='client-detail'),
    path('clients/<int:pk>/approve/', client_approve, name='client-approve'),
    path('clients/<int:pk>/geolocate/', client_geolocate, name='client-geolocate'),
]
