from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

STATUSES = ("watched", "watchlist")

class Movie(db.Model): #one tracked movie/show
    __tablename__ = "movies"
    id = db.Column(db.BigInteger, primary_key=True, autoincrement=False)  # client or generator supplied
    title = db.Column(db.String(255), index=True)
    genre = db.Column(db.String(100))
    rating = db.Column(db.Numeric(3, 1, asdecimal=False))   # 1–10, step 0.1
    review = db.Column(db.Text)
    year = db.Column(db.Integer)
    watched_date = db.Column("watchedDate", db.Date, nullable=True)
    status = db.Column(db.String(16), default="watched", nullable=False)
    date_added = db.Column("dateAdded", db.Date, nullable=False)

    def __repr__(self):
        return f"<Movie {self.id} {self.title!r}>" #rep of the movie object
