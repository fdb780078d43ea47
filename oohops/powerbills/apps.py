from django.apps import AppConfig


class PowerbillsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'oohops.powerbills'
