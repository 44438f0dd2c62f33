"""ASGI entry point (e.g. `uvicorn laarikhojo.api.app:app`)."""

from .factory import create_app

app = create_app()
