"""Command-line interface for tnetctl."""

from ._app import app, create_app, main

__all__ = ["app", "create_app", "main"]
