#just using this to load sample data into the db
from app import app
from models import db, Movie
from app_core.store import replace_movie

with app.app_context():
    db.drop_all(); db.create_all()
    rows = [
        {"title": "The Matrix", "genre": "Sci-Fi", "rating": 9, "year": 1999, "status": "watched", "watchedDate": "2024-02-10"},
        {"title": "Amelie", "genre": "Drama", "rating": 8, "year": 2001, "status": "watched"},
        {"title": "Dune: Part Two", "genre": "Sci-Fi", "rating": 8.5, "year": 2024, "status": "watchlist"},
    ]
    for row in rows:
        replace_movie(row, app.config["ID_GENERATOR"])
    print("Seeded:", Movie.query.count())
