"""
Client-side state for the watchlist: the in-memory copy of every record,
the filter/sort settings, the add/edit form, and the derived view.

`derive_view` is a pure function of (records, filters) so it can be used by
any front end, the server-rendered page included.
"""
import logging
import unicodedata
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests

import movies_client
from app_core.ids import IdGenerator, MillisIdGenerator

logger = logging.getLogger(__name__)

SORT_KEYS = ("dateAdded", "rating", "title", "year")

EMPTY_FORM = {
    "title": "",
    "genre": "",
    "rating": "",
    "review": "",
    "year": "",
    "watchedDate": "",
    "status": "watched",
}


def _num(v: Any) -> Optional[float]:
    if v is None or v == "":
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def matches(record: Dict[str, Any], search_term: str = "", min_rating: Any = None) -> bool:
    term = (search_term or "").lower()
    title = (record.get("title") or "").lower()
    genre = (record.get("genre") or "").lower()
    if term not in title and term not in genre:
        return False

    floor = _num(min_rating)
    if floor is None:
        return True
    rating = _num(record.get("rating"))
    return rating is not None and rating >= floor


def _collation_key(title: Any) -> tuple:
    # accents and case only break ties, so "Édith" sorts between "Amelie" and "Zorro"
    text = "" if title is None else str(title)
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), text.casefold(), text


def _sort_key(sort_key: str):
    if sort_key == "rating":
        return lambda r: _num(r.get("rating")) or 0.0, True
    if sort_key == "title":
        return lambda r: _collation_key(r.get("title")), False
    if sort_key == "year":
        return lambda r: _num(r.get("year")) or 0, True
    # dateAdded and anything unknown: newest id first, same as the store order
    return lambda r: _num(r.get("id")) or 0, True


def derive_view(
    records: Iterable[Dict[str, Any]],
    search_term: str = "",
    sort_key: str = "dateAdded",
    min_rating: Any = None,
) -> List[Dict[str, Any]]:
    """Filter by search term (title or genre) and minimum rating, then sort."""
    view = [r for r in records if matches(r, search_term, min_rating)]
    key, descending = _sort_key(sort_key)
    return sorted(view, key=key, reverse=descending)


def collection_stats(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    watched = sum(1 for r in records if r.get("status") == "watched")
    watchlist = sum(1 for r in records if r.get("status") == "watchlist")
    if records:
        total = sum(_num(r.get("rating")) or 0.0 for r in records)
        avg = round(total / len(records), 1)
    else:
        avg = 0
    return {"watched": watched, "watchlist": watchlist, "avg_rating": avg}


def rating_tier(rating: Any) -> str:
    n = _num(rating) or 0.0
    if n >= 9:
        return "excellent"
    if n >= 7:
        return "good"
    if n >= 5:
        return "fair"
    return "poor"


class WatchlistController:
    """
    Holds the authoritative copy of all records and keeps `view` in sync.

    `api` is anything exposing fetch_movies / save_movie / delete_movie
    (the movies_client module by default). `confirm` decides whether a delete
    goes ahead; `on_edit` lets a UI react to entering edit mode.
    """

    def __init__(
        self,
        api=movies_client,
        id_generator: Optional[IdGenerator] = None,
        confirm: Optional[Callable[[Dict[str, Any]], bool]] = None,
        today: Callable[[], date] = date.today,
        on_edit: Optional[Callable[[Dict[str, Any]], None]] = None,
    ):
        self.api = api
        self.id_generator = id_generator or MillisIdGenerator()
        self.confirm = confirm or (lambda record: True)
        self.today = today
        self.on_edit = on_edit

        self.records: List[Dict[str, Any]] = []
        self.view: List[Dict[str, Any]] = []
        self.search_term = ""
        self.sort_key = "dateAdded"
        self.min_rating: Any = None
        self.editing_id: Optional[int] = None
        self.form: Dict[str, Any] = dict(EMPTY_FORM)
        self.is_loading = False
        self.last_error: Optional[str] = None

    # derived state

    def refresh_view(self):
        self.view = derive_view(self.records, self.search_term, self.sort_key, self.min_rating)
        return self.view

    @property
    def stats(self):
        return collection_stats(self.records)

    def set_records(self, records):
        self.records = list(records)
        self.refresh_view()

    def set_search(self, term: str):
        self.search_term = term or ""
        self.refresh_view()

    def set_sort(self, sort_key: str):
        if sort_key not in SORT_KEYS:
            raise ValueError(f"sort key must be one of {list(SORT_KEYS)}")
        self.sort_key = sort_key
        self.refresh_view()

    def set_min_rating(self, value):
        self.min_rating = value if value not in ("", None) else None
        self.refresh_view()

    # api calls

    def _call(self, action: str, fn, *args):
        self.is_loading = True
        try:
            return fn(*args), True
        except (requests.RequestException, ValueError) as e:
            self.last_error = f"Failed to {action}: {e}"
            logger.error("Error trying to %s: %s", action, e)
            return None, False
        finally:
            self.is_loading = False

    def load(self) -> bool:
        self.last_error = None
        data, ok = self._call("load movies", self.api.fetch_movies)
        if ok:
            self.set_records(data)
        return ok

    def _refetch(self):
        # a refresh after a mutation must not wipe the mutation's error
        data, ok = self._call("load movies", self.api.fetch_movies)
        if ok:
            self.set_records(data)

    # form handling

    def update_form(self, **fields):
        self.form.update(fields)

    def edit(self, record: Dict[str, Any]):
        self.form = dict(record)
        self.editing_id = record.get("id")
        if self.on_edit:
            self.on_edit(record)

    def cancel_edit(self):
        self.form = dict(EMPTY_FORM)
        self.editing_id = None

    def dismiss_error(self):
        self.last_error = None

    def _original_date_added(self):
        for r in self.records:
            if r.get("id") == self.editing_id:
                return r.get("dateAdded")
        # record vanished since the last fetch; the server will stamp today
        return None

    def build_record(self) -> Dict[str, Any]:
        if self.editing_id is not None:
            return {**self.form, "id": self.editing_id, "dateAdded": self._original_date_added()}
        return {**self.form, "id": self.id_generator(), "dateAdded": self.today().isoformat()}

    def submit(self) -> bool:
        """Save the form. Returns False when the title/rating gate stops it."""
        if not str(self.form.get("title") or "").strip() or str(self.form.get("rating") or "").strip() == "":
            return False

        record = self.build_record()
        self.last_error = None
        _, saved = self._call("save movie", self.api.save_movie, record)
        self._refetch()

        if saved and self.last_error is None:
            self.cancel_edit()
        return saved

    def delete(self, movie_id: int) -> bool:
        record = next((r for r in self.records if r.get("id") == movie_id), {"id": movie_id})
        if not self.confirm(record):
            return False
        self.last_error = None
        _, deleted = self._call("delete movie", self.api.delete_movie, movie_id)
        self._refetch()
        return deleted
