# taxdesk_core/apps.py

from django.apps import AppConfig


class TaxdeskCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "taxdesk_core"
    verbose_name = "Taxdesk"
