from flask import Blueprint, current_app, render_template, request, redirect, url_for, flash

from client_state import EMPTY_FORM, SORT_KEYS, derive_view, collection_stats, rating_tier
from .store import StoreError, replace_movie, get_movie, list_movies, delete_movie, movie_to_dict, utc_today

web_bp = Blueprint("web", __name__)

FORM_FIELDS = tuple(EMPTY_FORM)

def _view_args():
    q = (request.args.get("q") or "").strip()
    sort = request.args.get("sort", "dateAdded")
    if sort not in SORT_KEYS:
        sort = "dateAdded"
    min_rating = (request.args.get("min_rating") or "").strip() or None
    return q, sort, min_rating

@web_bp.get("/")
def html_index():
    q, sort, min_rating = _view_args()
    try:
        records = [movie_to_dict(m) for m in list_movies()]
    except StoreError:
        flash("Failed to load movies.", "error")
        records = []

    form, editing_id = dict(EMPTY_FORM), None
    edit_id = request.args.get("edit", type=int)
    if edit_id is not None:
        found = next((r for r in records if r["id"] == edit_id), None)
        if found:
            form = {k: ("" if v is None else v) for k, v in found.items()}
            editing_id = edit_id
        else:
            flash("Not found.", "error")

    return render_template(
        "index.html",
        movies=derive_view(records, q, sort, min_rating),
        stats=collection_stats(records),
        rating_tier=rating_tier,
        form=form,
        editing_id=editing_id,
        q=q, sort=sort, min_rating=min_rating or "",
        sort_keys=SORT_KEYS,
        total=len(records),
    )

@web_bp.post("/save")
def html_save():
    # blank inputs clear the column
    data = {k: (request.form.get(k) or "").strip() or None for k in FORM_FIELDS}
    editing_id = request.form.get("id", type=int)

    if not data["title"] or not data["rating"]:
        flash("Title and rating are required.", "error")
        return redirect(url_for("web.html_index", edit=editing_id) if editing_id else url_for("web.html_index"))

    try:
        if editing_id is not None:
            existing = get_movie(editing_id)
            data["id"] = editing_id
            data["dateAdded"] = existing.date_added.isoformat() if existing and existing.date_added else None
        else:
            data["dateAdded"] = utc_today().isoformat()
        replace_movie(data, current_app.config.get("ID_GENERATOR"))
    except StoreError as e:
        flash(f"Failed to save movie: {e}", "error")
        return redirect(url_for("web.html_index", edit=editing_id) if editing_id else url_for("web.html_index"))

    flash("Movie saved.", "success")
    return redirect(url_for("web.html_index"))

@web_bp.post("/delete/<int:movie_id>")
def html_delete(movie_id):
    try:
        deleted = delete_movie(movie_id)
    except StoreError as e:
        flash(f"Failed to delete movie: {e}", "error")
        return redirect(url_for("web.html_index"))

    if deleted:
        flash("Movie deleted.", "success")
    else:
        flash("Not found.", "error")
    return redirect(url_for("web.html_index"))
