import os
import logging
import logging.config
from pathlib import Path

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

import config as app_config
from config import (
    LOG_FILE,
    MAX_IMAGE_BYTES,
    PAGE_SIZE,
    REPORT_EMAIL,
    SPOTLIGHT_FILE,
    SUBMIT_MAX_ATTEMPTS,
    get_data_dir,
)
from catalog.state import CatalogState
from content_api.client import GitHubContentClient
from init import initialize_app
from routes import catalog as routes_catalog
from routes import submit as routes_submit
from routes import utility as routes_utility
from submissions.service import SubmissionService

logger = logging.getLogger(__name__)

content_client = GitHubContentClient()


def _determine_log_level(flask_app: Flask) -> int:
    if flask_app.debug:
        return logging.DEBUG
    env_value = str(flask_app.config.get('ENV', '')).lower()
    if env_value == 'development':
        return logging.DEBUG
    if os.environ.get('FLASK_DEBUG', '').lower() in {'1', 'true', 'yes', 'on'}:
        return logging.DEBUG
    return logging.INFO


def _configure_logging(flask_app: Flask) -> None:
    log_level = _determine_log_level(flask_app)
    log_path = Path(LOG_FILE)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass

    for handler in list(flask_app.logger.handlers):
        flask_app.logger.removeHandler(handler)

    logging.config.dictConfig(
        {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'standard': {
                    'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s',
                    'datefmt': '%Y-%m-%d %H:%M:%S',
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'formatter': 'standard',
                    'level': log_level,
                    'stream': 'ext://sys.stdout',
                },
                'file': {
                    'class': 'logging.handlers.RotatingFileHandler',
                    'formatter': 'standard',
                    'level': logging.DEBUG,
                    'filename': os.fspath(log_path),
                    'maxBytes': 5 * 1024 * 1024,
                    'backupCount': 5,
                    'encoding': 'utf-8',
                },
            },
            'root': {
                'level': log_level,
                'handlers': ['console', 'file'],
            },
        }
    )

    flask_app.logger = logging.getLogger(flask_app.import_name)
    flask_app.logger.setLevel(log_level)
    logger.setLevel(log_level)


app = Flask(__name__)
# Base64 inflates uploads by a third; leave headroom for the text fields.
app.config['MAX_CONTENT_LENGTH'] = MAX_IMAGE_BYTES * 4 // 3 + 1024 * 1024
app.config['PAGE_SIZE'] = PAGE_SIZE

_configure_logging(app)


@app.errorhandler(RequestEntityTooLarge)
def handle_file_too_large(e):
    app.logger.warning("Request body too large for path %s", request.path)
    return jsonify({'error': 'file too large'}), 413


@app.errorhandler(Exception)
def handle_exception(e):
    if isinstance(e, HTTPException):
        if request.path.startswith('/api/'):
            return jsonify({'error': e.description or e.name}), e.code or 500
        return e
    app.logger.exception("Unhandled exception")
    if request.path.startswith('/api/'):
        return jsonify({'error': 'internal server error'}), 500
    return "Internal Server Error", 500


catalog_state = CatalogState(data_dir_factory=get_data_dir, logger=logger)


def ensure_dirs() -> None:
    os.makedirs(get_data_dir(), exist_ok=True)


def get_spotlight_path() -> Path:
    return get_data_dir() / SPOTLIGHT_FILE


def get_submission_service() -> SubmissionService:
    return SubmissionService(
        content_client,
        report_email=REPORT_EMAIL,
        max_image_bytes=MAX_IMAGE_BYTES,
        max_attempts=SUBMIT_MAX_ATTEMPTS,
    )


loaded_counts = initialize_app(
    ensure_dirs=ensure_dirs,
    catalog_state=catalog_state,
    check_content_api=app_config.content_api_configured,
)

_blueprints_configured = False


def configure_blueprints(flask_app: Flask) -> None:
    global _blueprints_configured
    if _blueprints_configured:
        return

    routes_catalog.configure({
        'catalog_state': catalog_state,
        'page_size': PAGE_SIZE,
        'report_email': REPORT_EMAIL,
        'get_spotlight_path': get_spotlight_path,
    })

    routes_submit.configure({
        'catalog_state': catalog_state,
        'get_submission_service': get_submission_service,
    })

    if 'catalog' not in flask_app.blueprints:
        flask_app.register_blueprint(routes_catalog.catalog_blueprint)
    if 'submit' not in flask_app.blueprints:
        flask_app.register_blueprint(routes_submit.submit_blueprint)
    if 'utility' not in flask_app.blueprints:
        flask_app.register_blueprint(routes_utility.utility_blueprint)

    _blueprints_configured = True


from web.app_factory import create_app

app = create_app(app, configure_blueprints=configure_blueprints)


if __name__ == '__main__':
    app.run(debug=True)
