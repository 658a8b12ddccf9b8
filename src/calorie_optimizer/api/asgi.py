"""ASGI entrypoint for the calorie optimizer API."""

from calorie_optimizer.api.app import create_app
from calorie_optimizer.containers import build_container

app = create_app(build_container())
