import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app

from .errors import read_json
from .store import StoreError, replace_movie, list_movies, delete_movie, movie_to_dict

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)  # blueprint for the movies REST routes

@api_bp.get("/health")
def health():
    return {"status": "Server is running", "timestamp": datetime.now(timezone.utc).isoformat()}

@api_bp.post("/movies")
def save_movie():
    # no required-field checks here, the client gates title and rating
    data = read_json()
    logger.debug("Received movie data: %s", data)
    try:
        replace_movie(data, current_app.config.get("ID_GENERATOR"))
    except StoreError as e:
        return {"error": "Database error", "detail": str(e)}, 500
    return "Movie saved", 200, {"Content-Type": "text/plain; charset=utf-8"}

@api_bp.get("/movies")
def get_movies():
    try:
        items = list_movies()
    except StoreError:
        return {"error": "Database error"}, 500
    return [movie_to_dict(m) for m in items]

@api_bp.delete("/movies/<movie_id>")
def remove_movie(movie_id):
    # a non-numeric id can't match any row
    try:
        movie_id = int(movie_id)
    except ValueError:
        return {"error": "Movie not found"}, 404
    try:
        deleted = delete_movie(movie_id)
    except StoreError:
        return {"error": "Database error"}, 500
    if not deleted:
        return {"error": "Movie not found"}, 404
    return {"message": "Movie deleted successfully"}
