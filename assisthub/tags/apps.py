from django.apps import AppConfig


class TagsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'assisthub.tags'

    def ready(self):
        """Connect tag release signals when app is ready"""
        from .signals import connect_tag_signals
        connect_tag_signals()
