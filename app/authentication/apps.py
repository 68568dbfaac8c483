from django.apps import AppConfig


class AuthenticationConfig(AppConfig):
    """Upload owners: the custom User model behind AUTH_USER_MODEL."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "authentication"
    verbose_name = "Upload owners"
