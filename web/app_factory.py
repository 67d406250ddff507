"""Flask application factory for the catalog API."""
from __future__ import annotations

from typing import Any, Callable, Mapping

from flask import Flask


def create_app(
    flask_app: Flask | None = None,
    *,
    configure_blueprints: Callable[[Flask], None] | None = None,
    config_overrides: Mapping[str, Any] | None = None,
) -> Flask:
    """Return the catalog application with its API blueprints registered.

    ``config_overrides`` is applied after the defaults from :mod:`app`, which
    lets tests flip ``TESTING`` or shrink ``MAX_CONTENT_LENGTH`` without
    touching the environment.
    """
    if flask_app is None or configure_blueprints is None:
        from app import app as default_app, configure_blueprints as default_configure

        flask_app = flask_app or default_app
        configure_blueprints = configure_blueprints or default_configure

    if config_overrides:
        flask_app.config.update(config_overrides)
    configure_blueprints(flask_app)
    return flask_app
