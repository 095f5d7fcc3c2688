"""ASGI entrypoint for the control API."""

from dinnerhelp_sync.api.app import create_app

app = create_app()
