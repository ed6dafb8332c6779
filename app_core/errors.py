import logging
from typing import Any, Dict

from flask import request
from werkzeug.exceptions import HTTPException, BadRequest, NotFound

logger = logging.getLogger(__name__)

# -----------------------------
# JSON error handlers
# -----------------------------

def install_json_error_handlers(app):
    @app.errorhandler(NotFound)
    def handle_not_found(e: NotFound):
        return {"error": "Endpoint not found"}, 404

    @app.errorhandler(HTTPException)
    def handle_http(e: HTTPException):
        return {"error": e.description}, e.code

    @app.errorhandler(Exception)
    def handle_generic(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return {"error": "Something went wrong!"}, 500


# -----------------------------
# Request helpers
# -----------------------------

def read_json() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        raise BadRequest("Invalid or missing JSON body")
    if not isinstance(data, dict):
        raise BadRequest("JSON body must be an object")
    return data
