"""CLI package for interacting with the IMU sensor relay."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# ``cli.app`` must keep resolving to the module so tests can patch
# ``cli.app.ApiClient``; the Typer instance lives at ``cli.app.app``.

__all__ = []
