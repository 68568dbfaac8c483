"""
Authentication application.

This app provides the user model the upload API authenticates against.
Tokens are issued by djangorestframework-simplejwt (see config.urls).

Key components:
    - User model: Custom email-based user authentication
    - UserManager: create_user / create_superuser helpers

Usage:
    from authentication.models import User
"""
