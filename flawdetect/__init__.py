"""
Flaw Detector Web Application

A web-based tool for detecting surface flaws by comparing live images
against a stored reference image of the same subject.
"""

import os
import logging
from flask import Flask, send_from_directory, make_response
from flask_cors import CORS

logger = logging.getLogger(__name__)

__version__ = "1.0.0"


def create_app(config=None):
    """Create and configure the Flask application."""
    app = Flask(__name__,
                static_folder='static',
                static_url_path='/static')

    # Enable CORS for API endpoints
    CORS(app)

    # Default configuration
    app.config['MAX_CONTENT_LENGTH'] = 50 * 1024 * 1024  # 50MB max upload
    app.config['SAVED_DATA_DIR'] = os.path.join(os.path.dirname(__file__), '..', 'saved_data')
    app.config['AUTOLOAD_REFERENCE'] = True

    # Apply custom config
    if config:
        app.config.update(config)

    # Register API blueprint
    from .api import api
    from .api.routes import reset_state, load_saved_reference_on_startup
    app.register_blueprint(api, url_prefix='/api')
    reset_state()

    # Auto-load saved reference on startup (if exists)
    if app.config['AUTOLOAD_REFERENCE']:
        with app.app_context():
            try:
                load_saved_reference_on_startup()
            except Exception as e:
                logger.warning(f"Could not auto-load saved reference: {e}")

    @app.route('/')
    def index():
        if app.static_folder is None or not os.path.exists(os.path.join(app.static_folder, 'index.html')):
            return {"service": "flawdetect", "version": __version__, "api": "/api"}
        response = make_response(send_from_directory(app.static_folder, 'index.html'))
        response.headers['Cache-Control'] = 'no-cache, no-store, must-revalidate'
        response.headers['Pragma'] = 'no-cache'
        response.headers['Expires'] = '0'
        return response

    return app
