"""ASGI entrypoint for the rollcall API."""

from rollcall.api.app import create_app
from rollcall.containers import build_container

app = create_app(build_container())
