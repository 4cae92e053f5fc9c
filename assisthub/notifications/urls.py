from django.urls import path
from .views import (
    notification_list_create, notification_detail, notification_mark_read,
    notification_mark_all_read, notification_unread_count
)

urlpatterns = [
    path('notifications/', notification_list_create, name='notification-list-create'),
    path('notifications/mark-all-read/', notification_mark_all_read, name='notification-mark-all-read'),
    path('notifications/unread-count/', notification_unread_count, name='notification-unread-count'),
    path('notifications/<int:pk>/', notification_detail, name='notification-detail'),
    path('notifications/<int:pk>/read/', notification_mark_read, name='notification-mark-read'),
]
