from django.apps import AppConfig


class OnCallConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "oncall"
    verbose_name = "On-call shifts and leave"
