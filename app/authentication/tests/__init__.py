"""
Tests for authentication app.

This package contains:
- factories.py: UserFactory shared with the media tests
- test_managers.py: UserManager tests

Usage:
    pytest authentication/tests/
"""
