import os, requests

API_BASE = os.getenv("BINGED_API_BASE", "http://localhost:3001").rstrip("/")  # base url for the binged api
TIMEOUT = 15

HEADERS = {"accept": "application/json"}

def _request(method, path, **kwargs):  # internal helper, every call raises on a non-2xx answer
    r = requests.request(method, f"{API_BASE}{path}", headers=HEADERS, timeout=TIMEOUT, **kwargs)
    r.raise_for_status()
    return r

def fetch_movies():  # full list, newest id first
    return _request("GET", "/movies").json()

def save_movie(record: dict):  # insert or fully replace by id
    return _request("POST", "/movies", json=record).text

def delete_movie(movie_id: int):
    return _request("DELETE", f"/movies/{movie_id}").json()

def health():
    return _request("GET", "/health").json()
