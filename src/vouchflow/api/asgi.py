"""ASGI entrypoint, served as ``vouchflow.api.asgi:app``.

Settings come from the environment (or ``.env.{ENVIRONMENT}``) at import time.
"""

from vouchflow.api.app import create_app
from vouchflow.config import Settings
from vouchflow.containers import build_container

settings = Settings()
app = create_app(build_container(settings))
