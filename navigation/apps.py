from django.apps import AppConfig
from django.conf import settings


class NavigationConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'navigation'
    verbose_name = 'Wayfinding'

    def ready(self):
        from .gateway import build_gateway
        self.gateway = build_gateway(settings.KIOSK_STORE)
