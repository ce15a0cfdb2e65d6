"""ASGI entrypoint for the archery log API."""

from archery_log.api.app import create_app
from archery_log.containers import build_container

app = create_app(build_container())
