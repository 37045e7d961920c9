"""
=============================================================================
CONTROLLERS
=============================================================================

The application's request handlers.

    ┌────────────┬──────────────────────────────┬───────────────────────┐
    │ handler    │ does                          │ answers               │
    ├────────────┼──────────────────────────────┼───────────────────────┤
    │ index      │ views/index.html              │ 200 page              │
    │ page1      │ views/page1.html              │ 200 page              │
    │ page2      │ views/page2.html              │ 200 page              │
    │ not_found  │ views/notFound.html           │ 404 page              │
    │ get_name   │ read the stored name          │ 200 {"name": ...}     │
    │ set_name   │ store "<first> <last>"        │ 200 {"name": ...}     │
    │            │                               │ 400 when a field is   │
    │            │                               │     missing           │
    └────────────┴──────────────────────────────┴───────────────────────┘

The stored name is the only mutable state in the application. It lives
in a NameStore created once at startup and shared by every worker thread.

=============================================================================
"""

import logging
import threading
from pathlib import Path
from typing import Any

from .http import HTTPRequest, HTTPResponse, HTTPStatus, ResponseBuilder, send_file


logger = logging.getLogger(__name__)


INITIAL_NAME = "unknown"

MISSING_PARAMS_ERROR = {
    "error": "firstname and lastname are both required",
    "id": "setNameMissingParams",
}


class NameStore:
    """
    Holds the stored name; last write wins, nothing is persisted.

        >>> store = NameStore()
        >>> store.get()
        'unknown'
        >>> store.set("Ada Lovelace")
        >>> store.get()
        'Ada Lovelace'
    """

    def __init__(self, initial: str = INITIAL_NAME):
        self._name = initial
        self._lock = threading.Lock()

    def get(self) -> str:
        with self._lock:
            return self._name

    def set(self, name: str) -> None:
        with self._lock:
            self._name = name


def _present(value: Any) -> bool:
    """A form field counts only as a non-empty string."""
    return isinstance(value, str) and value != ""


class Controllers:
    """
    Handler set bound to a views directory and a NameStore.

        controllers = Controllers(views_dir, NameStore())
        router.get("/page1")(controllers.page1)

    View files are resolved against views_dir on every request, so a
    missing file surfaces as a 500 from the server, not a startup error.
    """

    def __init__(self, views_dir: str | Path, store: NameStore):
        self.views_dir = Path(views_dir).resolve()
        self.store = store

    def _view(self, filename: str) -> Path:
        return self.views_dir / filename

    # ─────────────────────────────────────────────────────────────────────
    # PAGES
    # ─────────────────────────────────────────────────────────────────────

    def index(self, request: HTTPRequest) -> HTTPResponse:
        return send_file(self._view("index.html"), request=request)

    def page1(self, request: HTTPRequest) -> HTTPResponse:
        return send_file(self._view("page1.html"), request=request)

    def page2(self, request: HTTPRequest) -> HTTPResponse:
        return send_file(self._view("page2.html"), request=request)

    def not_found(self, request: HTTPRequest) -> HTTPResponse:
        return send_file(
            self._view("notFound.html"),
            request=request,
            status=HTTPStatus.NOT_FOUND,
        )

    # ─────────────────────────────────────────────────────────────────────
    # NAME API
    # ─────────────────────────────────────────────────────────────────────

    def get_name(self, request: HTTPRequest) -> HTTPResponse:
        return ResponseBuilder().json({"name": self.store.get()}).build()

    def set_name(self, request: HTTPRequest) -> HTTPResponse:
        """
        Store "<firstname> <lastname>" from the parsed form body.

        Both fields must be non-empty strings. On failure the stored name
        is left untouched and a 400 with id "setNameMissingParams" is
        returned.

        A repeated key (firstname=Ada&firstname=Bob) parses to a list and
        so counts as missing. An Express handler doing the same string
        concatenation would store the list joined with commas ("Ada,Bob").
        """
        form = request.form
        logger.debug(f"setName body: {form!r}")

        firstname = form.get("firstname")
        lastname = form.get("lastname")

        if not (_present(firstname) and _present(lastname)):
            return (ResponseBuilder()
                .status(HTTPStatus.BAD_REQUEST)
                .json(MISSING_PARAMS_ERROR)
                .build())

        name = f"{firstname} {lastname}"
        self.store.set(name)
        logger.info(f"Stored name set to {name!r}")

        return ResponseBuilder().json({"name": name}).build()
