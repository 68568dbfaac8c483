"""
Authentication models.

The only thing the upload service needs from authentication is a stable
principal to own upload sessions and assets. Users are keyed by UUID: the
owner id is the first segment of every durable storage key
("<owner_id>/<uuid>/original"), so it must not be guessable or reveal how
many accounts exist.

Related files:
    - managers.py: Email-based creation helpers
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager
from core.model_mixins import UUIDPrimaryKeyMixin


class User(UUIDPrimaryKeyMixin, AbstractBaseUser, PermissionsMixin):
    """
    Account that owns uploads, identified by email.

    Reverse relations from the media app:
        upload_sessions: UploadSession rows started by this user
        assets: Asset rows this user owns (deduplicated per content hash)

    Usage:
        owner = User.objects.create_user(email="owner@example.com", password="...")
        owner.assets.filter(content_hash=digest).exists()
    """

    email = models.EmailField(
        unique=True,
        help_text="Login identifier",
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive users can't authenticate and so can't upload",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Can log into the admin site to inspect uploads",
    )
    date_joined = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email
