"""Django app configuration for django-barcodes."""

from django.apps import AppConfig


class DjangoBarcodesConfig(AppConfig):
    """App configuration for django-barcodes."""

    name = 'django_barcodes'
    verbose_name = 'Reserved Barcodes'
    default_auto_field = 'django.db.models.BigAutoField'
