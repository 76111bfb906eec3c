"""
=============================================================================
EXAMPLE: NOTES API
=============================================================================

A small REST API built on routekit. It shows:

1. Ordered route declarations with short (<id>) and long ({path}) params
2. Method lists and raw JSON bodies (Router.get_json)
3. JSON envelopes with print_json / pj
4. Middleware on route arguments
5. Static files, redirects and the automatic 404/501 fallback
6. A ConfigStore for persistent settings

Run it:

    python -m routekit examples.notes_api:setup --port 8000 --log-level INFO

Try it:

    curl http://127.0.0.1:8000/notes
    curl -X POST -H 'Content-Type: application/json' \\
         -d '{"title": "hello"}' http://127.0.0.1:8000/notes
    curl http://127.0.0.1:8000/notes/1
    curl -X PATCH -H 'Content-Type: application/json' \\
         -d '{"title": "bye"}' http://127.0.0.1:8000/notes/1
    curl -X DELETE http://127.0.0.1:8000/notes/1
    curl http://127.0.0.1:8000/files/examples/notes_api.py
    curl -X PURGE http://127.0.0.1:8000/notes        # 501, verb unknown
=============================================================================
"""

from pathlib import Path
import itertools
import os
import tempfile
import threading

from routekit import ConfigStore, Router


# In-memory storage shared across requests. Each request gets its own
# Router, so anything that must outlive a request lives at module level.
_notes = {}
_ids = itertools.count(1)
_lock = threading.Lock()

ROOT = Path(__file__).resolve().parent.parent

settings = ConfigStore(
    os.environ.get("NOTES_SETTINGS", os.path.join(tempfile.gettempdir(), "notes-settings.json"))
)


def require_json(args, router):
    """Reject write requests that don't declare a JSON body."""
    if args.method in ("POST", "PATCH") and not router.get_json(args):
        router.header.print_json(1, "JSON object body required", 400)


def setup(router: Router) -> None:
    header = router.header

    def index(args):
        header.print_json(0, {
            "name": settings.get("site.name", "notes"),
            "notes": router.host + "notes",
        })

    def list_notes(args):
        with _lock:
            notes = list(_notes.values())
        limit = args.get.get("limit")
        if limit is not None and limit.isdigit():
            notes = notes[:int(limit)]
        header.print_json(0, notes)

    def create_note(args):
        data = router.get_json(args)
        with _lock:
            note = {"id": next(_ids), "title": str(data.get("title", ""))}
            _notes[note["id"]] = note
        header.print_json(0, note, 201)

    def show_note(args):
        note = _notes.get(_int(args.params["id"]))
        header.pj((0, note) if note else (1, "not found"), 404)

    def update_note(args):
        data = router.get_json(args)
        with _lock:
            note = _notes.get(_int(args.params["id"]))
            if note is not None:
                note["title"] = str(data.get("title", note["title"]))
        header.pj((0, note) if note else (1, "not found"), 404)

    def delete_note(args):
        with _lock:
            note = _notes.pop(_int(args.params["id"]), None)
        header.pj((0, None) if note else (1, "not found"), 404)

    def rename_site(args):
        data = router.get_json(args)
        settings.set("site.name", str(data.get("name", "notes")))
        header.print_json(0, settings.get("site"))

    def serve_file(args):
        target = (ROOT / args.params["path"]).resolve()
        if ROOT not in target.parents:
            router.abort(403)
        router.static_file(str(target), cache=60)

    router.add_middleware(require_json)

    router.route("/", index)
    router.route("/notes", list_notes)
    router.route("/notes", create_note, "POST", raw_body=True)
    router.route("/notes/<id>", show_note)
    router.route("/notes/<id>", update_note, ["PUT", "PATCH"])
    router.route("/notes/<id>", delete_note, "DELETE")
    router.route("/site", rename_site, "PUT")
    router.route("/files/{path}", serve_file)
    router.route("/home", lambda args: router.redirect(router.host))


def _int(value: str) -> int:
    return int(value) if value.isdigit() else -1


if __name__ == "__main__":
    from routekit.__main__ import main

    raise SystemExit(main(["examples.notes_api:setup"]))
