"""Shared route dependencies."""

from fastapi import Request

from marketplace.config import Settings


def get_settings(request: Request) -> Settings:
    """The Settings the running app was built with (see create_app)."""
    return request.app.state.settings
