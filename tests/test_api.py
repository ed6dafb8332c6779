import os, pytest, sys
from datetime import datetime, timezone
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from app import create_app
from models import db
from app_core import store
from app_core.ids import SequenceIdGenerator

@pytest.fixture()
def client(tmp_path):
    # using a temp sqlite db for testing
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path/'test.db'}",
        "ID_GENERATOR": SequenceIdGenerator(start=1000),
    })
    with app.app_context():
        db.drop_all(); db.create_all()

    c = app.test_client()
    # yield so we can cleanup after each test
    yield c

    # teardown: close sessions and dispose engine to silence ResourceWarnings
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


def _movie(**overrides):
    m = {
        "id": 1,
        "title": "Dune",
        "genre": "Sci-Fi",
        "rating": 9,
        "review": "Sand everywhere.",
        "year": 2021,
        "watchedDate": "2024-03-05",
        "status": "watched",
        "dateAdded": "2024-03-01",
    }
    m.update(overrides)
    return m

def _by_id(client, mid):
    return next((m for m in client.get("/movies").json if m["id"] == mid), None)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["status"] == "Server is running"
    # timestamp is a parseable ISO string
    datetime.fromisoformat(r.json["timestamp"])

def test_save_then_list_roundtrip(client):
    r = client.post("/movies", json=_movie())
    assert r.status_code == 200
    assert r.get_data(as_text=True) == "Movie saved"

    r = client.get("/movies")
    assert r.status_code == 200
    assert r.json == [_movie()]

def test_replace_clears_omitted_fields(client):
    client.post("/movies", json=_movie(id=7))
    # update without genre/review: the row is replaced, not merged
    r = client.post("/movies", json={"id": 7, "title": "Dune", "rating": 8.5, "dateAdded": "2024-03-01"})
    assert r.status_code == 200

    rows = [m for m in client.get("/movies").json if m["id"] == 7]
    assert len(rows) == 1
    row = rows[0]
    assert row["genre"] is None
    assert row["review"] is None
    assert row["year"] is None
    assert row["rating"] == 8.5
    assert row["status"] == "watched"
    assert row["dateAdded"] == "2024-03-01"

def test_list_is_ordered_by_id_desc(client):
    for mid in (5, 42, 17):
        client.post("/movies", json=_movie(id=mid, title=f"M{mid}"))
    # editing an old row does not move it to the top
    client.post("/movies", json=_movie(id=5, title="M5 edited"))

    ids = [m["id"] for m in client.get("/movies").json]
    assert ids == [42, 17, 5]

def test_delete_existing_and_missing(client):
    client.post("/movies", json=_movie(id=3))

    r = client.delete("/movies/3")
    assert r.status_code == 200
    assert r.json == {"message": "Movie deleted successfully"}
    assert client.get("/movies").json == []

    client.post("/movies", json=_movie(id=4))
    r = client.delete("/movies/999999")
    assert r.status_code == 404
    assert r.json == {"error": "Movie not found"}
    assert [m["id"] for m in client.get("/movies").json] == [4]

def test_missing_id_uses_generator(client):
    r = client.post("/movies", json={"title": "No id", "rating": 6})
    assert r.status_code == 200
    r = client.post("/movies", json={"title": "No id either", "rating": 7})
    assert r.status_code == 200
    ids = [m["id"] for m in client.get("/movies").json]
    assert ids == [1001, 1000]

def test_dates_are_normalized(client):
    client.post("/movies", json=_movie(id=1, watchedDate="", dateAdded="10/18/2026"))
    client.post("/movies", json=_movie(id=2, watchedDate="not a date", dateAdded="2026-10-18T23:30:00-05:00"))
    client.post("/movies", json=_movie(id=3, watchedDate=None, dateAdded=None))

    today = datetime.now(timezone.utc).date().isoformat()
    rows = {m["id"]: m for m in client.get("/movies").json}
    assert rows[1]["watchedDate"] is None
    assert rows[1]["dateAdded"] == "2026-10-18"
    assert rows[2]["watchedDate"] is None
    # offsets are folded to UTC before the date is taken
    assert rows[2]["dateAdded"] == "2026-10-19"
    assert rows[3]["dateAdded"] == today

def test_partial_body_is_stored_as_is(client):
    # no server-side required fields: a body without title or rating is accepted
    r = client.post("/movies", json={"id": 11, "genre": "Horror"})
    assert r.status_code == 200
    row = _by_id(client, 11)
    assert row["title"] is None
    assert row["rating"] is None
    assert row["genre"] == "Horror"
    assert row["status"] == "watched"

def test_string_numbers_are_coerced(client):
    r = client.post("/movies", json=_movie(id="12", rating="7.5", year="1999"))
    assert r.status_code == 200
    row = _by_id(client, 12)
    assert row["rating"] == 7.5
    assert row["year"] == 1999

def test_store_rejections_are_500_with_detail(client):
    r = client.post("/movies", json=_movie(rating="great"))
    assert r.status_code == 500
    assert r.json["error"] == "Database error"
    assert "rating" in r.json["detail"]

    r = client.post("/movies", json=_movie(status="abandoned"))
    assert r.status_code == 500
    assert "status" in r.json["detail"]

def test_body_must_be_json_object(client):
    r = client.post("/movies", data="title=x")
    assert r.status_code == 400
    assert "error" in r.json

    r = client.post("/movies", json=[1, 2])
    assert r.status_code == 400
    assert r.json["error"] == "JSON body must be an object"

def test_store_failures_on_list_and_delete(client, monkeypatch):
    def boom(*a, **kw):
        raise store.StoreError("connection refused")
    monkeypatch.setattr("app_core.api.list_movies", boom)
    monkeypatch.setattr("app_core.api.delete_movie", boom)

    r = client.get("/movies")
    assert r.status_code == 500
    assert r.json == {"error": "Database error"}

    r = client.delete("/movies/1")
    assert r.status_code == 500
    assert r.json == {"error": "Database error"}

def test_unexpected_error_is_generic_500(client, monkeypatch):
    def boom(*a, **kw):
        raise RuntimeError("kaboom")
    monkeypatch.setattr("app_core.api.list_movies", boom)
    r = client.get("/movies")
    assert r.status_code == 500
    assert r.json == {"error": "Something went wrong!"}

def test_delete_non_numeric_id_is_movie_not_found(client):
    r = client.delete("/movies/abc")
    assert r.status_code == 404
    assert r.json == {"error": "Movie not found"}

def test_unknown_route_is_json_404(client):
    r = client.get("/nope")
    assert r.status_code == 404
    assert r.json == {"error": "Endpoint not found"}

def test_wrong_method_is_json_405(client):
    r = client.put("/movies")
    assert r.status_code == 405
    assert "error" in r.json

def test_cors_headers(client):
    r = client.get("/health")
    assert r.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
    assert "DELETE" in r.headers["Access-Control-Allow-Methods"]
    assert r.headers["Access-Control-Allow-Credentials"] == "true"

def test_metrics_endpoint(client):
    client.get("/health")
    r = client.get("/metrics")
    assert r.status_code == 200
    assert b"binged_http_requests_total" in r.data

def test_startup_survives_unreachable_database(tmp_path):
    # a bad database leaves the app serving; data routes fail as 500
    bad = tmp_path / "missing-dir" / "nested" / "x.db"
    app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": f"sqlite:///{bad}"})
    c = app.test_client()
    assert c.get("/health").status_code == 200
    r = c.get("/movies")
    assert r.status_code == 500
    assert r.json == {"error": "Database error"}
    with app.app_context():
        db.session.remove()
        db.engine.dispose()
