import logging

from flask import Blueprint, Flask, Response, current_app, jsonify, request

from . import config
from .errors import StorageError

logger = logging.getLogger(__name__)

bp = Blueprint('aranet', __name__)

ENDPOINTS_TEXT = (
    "Aranet4 HTTP Server\n\n"
    "Endpoints:\n"
    "  GET /api/sensor  - Get current sensor data\n"
    "  GET /api/history - Get stored readings (?hours=N&limit=N)\n"
    "  GET /health      - Health check\n"
)


def _text(body, status):
    return Response(body, status=status, mimetype='text/plain')


def _int_arg(name, default=None):
    """Parses an optional non-negative integer query parameter."""
    raw = request.args.get(name)
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Invalid '{name}': expected an integer, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"Invalid '{name}': must not be negative")
    return value


# --- Meta Routes ---


@bp.route('/')
def index():
    return _text(ENDPOINTS_TEXT, 200)


@bp.route('/health')
def health():
    return Response(status=200)

# --- API Routes ---


@bp.route('/api/sensor')
def api_sensor():
    reading = current_app.extensions['aranet.cell'].get()
    if reading is None:
        return _text("No sensor data available yet. Waiting for first reading...", 503)
    return jsonify(reading.to_dict())


@bp.route('/api/history')
def api_history():
    try:
        hours = _int_arg('hours')
        limit = _int_arg('limit', config.HISTORY_DEFAULT_LIMIT)
    except ValueError as e:
        return _text(str(e), 400)

    try:
        readings = current_app.extensions['aranet.store'].query(hours=hours, limit=limit)
    except StorageError as e:
        logger.error("History query failed: %s", e)
        return _text(f"Failed to query history: {e}", 500)

    return jsonify([reading.to_dict() for reading in readings])

# --- Flask App Factory & Runner ---


def create_app(cell, store):
    """Builds the Flask app around the shared reading cell and history store."""
    app = Flask(__name__)
    app.extensions['aranet.cell'] = cell
    app.extensions['aranet.store'] = store
    app.register_blueprint(bp)
    return app


def run_flask_app(app, host=config.HTTP_HOST, port=config.HTTP_PORT):
    """Starts the Flask web server."""
    logger.info("Listening on http://%s:%s", host, port)
    app.run(host=host, port=port, debug=False, threaded=True, use_reloader=False)
