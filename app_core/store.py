import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from dateutil import parser as date_parser
from sqlalchemy.exc import SQLAlchemyError

from models import db, Movie, STATUSES
from .ids import IdGenerator, MillisIdGenerator
from .metrics import MOVIES_SAVED, MOVIES_DELETED, STORE_ERRORS

logger = logging.getLogger(__name__)

_default_ids = MillisIdGenerator()


class StoreError(Exception):
    """The movies table rejected an operation; carries the underlying detail."""


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


# two defaults that differ in year, month and day: a field only the default
# supplied shows up as a mismatch
_FILL_DEFAULTS = (datetime(1904, 1, 1), datetime(1908, 2, 2))


def format_date(value: Any) -> Optional[date]:
    """
    Lenient date parsing: ISO dates, ISO datetimes (offsets folded to UTC) and
    locale strings such as '10/18/2026'. Anything unparseable, or missing its
    year, month or day ('March', '2024', 'Monday'), gives None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return value
    else:
        text = str(value).strip()
        try:
            first, second = (date_parser.parse(text, default=d) for d in _FILL_DEFAULTS)
        except (ValueError, OverflowError):
            return None
        if first.date() != second.date():
            return None
        parsed = first
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def _blank(v: Any) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())


def _to_int(v: Any, field: str) -> Optional[int]:
    if _blank(v):
        return None
    if isinstance(v, bool):
        raise StoreError(f"Incorrect integer value for column '{field}': {v!r}")
    try:
        return int(str(v).strip()) if isinstance(v, str) else int(v)
    except (TypeError, ValueError):
        raise StoreError(f"Incorrect integer value for column '{field}': {v!r}")


def _to_decimal(v: Any, field: str) -> Optional[float]:
    if _blank(v):
        return None
    if isinstance(v, bool):
        raise StoreError(f"Incorrect decimal value for column '{field}': {v!r}")
    try:
        return float(v)
    except (TypeError, ValueError):
        raise StoreError(f"Incorrect decimal value for column '{field}': {v!r}")


def _to_text(v: Any) -> Optional[str]:
    if v is None:
        return None
    return v if isinstance(v, str) else str(v)


def normalize_record(data: Dict[str, Any], id_generator: Optional[IdGenerator] = None) -> Dict[str, Any]:
    """Map an incoming record onto column values. Every column is set, so a replace never merges."""
    movie_id = _to_int(data.get("id"), "id")
    if movie_id is None:
        movie_id = (id_generator or _default_ids)()

    status = data.get("status") or "watched"
    if status not in STATUSES:
        raise StoreError(f"Data truncated for column 'status': {status!r}")

    return {
        "id": movie_id,
        "title": _to_text(data.get("title")),
        "genre": _to_text(data.get("genre")),
        "rating": _to_decimal(data.get("rating"), "rating"),
        "review": _to_text(data.get("review")),
        "year": _to_int(data.get("year"), "year"),
        "watched_date": format_date(data.get("watchedDate")),
        "status": status,
        "date_added": format_date(data.get("dateAdded")) or utc_today(),
    }


def _failed(operation: str, e: Exception) -> StoreError:
    db.session.rollback()
    STORE_ERRORS.labels(operation).inc()
    logger.error("Database error during %s: %s", operation, e)
    return StoreError(str(e))


def replace_movie(data: Dict[str, Any], id_generator: Optional[IdGenerator] = None) -> int:
    """Insert the record, or overwrite every column of the row with the same id."""
    try:
        values = normalize_record(data, id_generator)
    except StoreError:
        STORE_ERRORS.labels("replace").inc()
        raise
    try:
        m = db.session.get(Movie, values["id"])
        created = m is None
        if created:
            m = Movie(id=values["id"])
            db.session.add(m)
        for column, value in values.items():
            setattr(m, column, value)
        db.session.commit()
    except SQLAlchemyError as e:
        raise _failed("replace", e) from e
    MOVIES_SAVED.labels("created" if created else "replaced").inc()
    logger.debug("Saved movie %s", values["id"])
    return values["id"]


def get_movie(movie_id: int) -> Optional[Movie]:
    try:
        return db.session.get(Movie, movie_id)
    except SQLAlchemyError as e:
        raise _failed("get", e) from e


def list_movies() -> List[Movie]:
    try:
        return Movie.query.order_by(Movie.id.desc()).all()
    except SQLAlchemyError as e:
        raise _failed("list", e) from e


def delete_movie(movie_id: int) -> bool:
    """True when a row was removed, False when no row had that id."""
    try:
        affected = Movie.query.filter_by(id=movie_id).delete()
        db.session.commit()
    except SQLAlchemyError as e:
        raise _failed("delete", e) from e
    if affected:
        MOVIES_DELETED.inc()
    return affected > 0


def movie_to_dict(m: Movie):
    return {
        "id": m.id,
        "title": m.title,
        "genre": m.genre,
        "rating": m.rating,
        "review": m.review,
        "year": m.year,
        "watchedDate": m.watched_date.isoformat() if m.watched_date else None,
        "status": m.status,
        "dateAdded": m.date_added.isoformat() if m.date_added else None,
    }
