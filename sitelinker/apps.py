from django.apps import AppConfig
from django.core.signals import setting_changed


def _reset_services(*, setting: str, **kwargs) -> None:
    if setting in ('SITELINKER', 'LANGUAGE_CODE'):
        from . import services

        services.clear_caches()


class SitelinkerConfig(AppConfig):
    """Configuration for the sitelinker Django app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'sitelinker'

    def ready(self) -> None:
        setting_changed.connect(_reset_services, dispatch_uid='sitelinker.reset_services')
