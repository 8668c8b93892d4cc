"""ASGI entrypoint for the treasure hunt API."""

from treasure_hunt.api.app import create_app
from treasure_hunt.containers import build_container

app = create_app(build_container())
