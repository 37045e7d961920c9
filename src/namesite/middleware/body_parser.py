"""
=============================================================================
FORM BODY PARSER
=============================================================================

Decodes application/x-www-form-urlencoded bodies into ``request.form``
before any handler runs.

    POST /setName
    Content-Type: application/x-www-form-urlencoded

    firstname=Ada&lastname=Lovelace
                │
                ▼
    request.form == {"firstname": "Ada", "lastname": "Lovelace"}

Any other Content-Type (or no body at all) leaves ``request.form == {}``;
handlers never need to check whether parsing happened.

=============================================================================
EXTENDED VS SIMPLE
=============================================================================

    body                          extended=True                simple
    ────────────────────────────  ───────────────────────────  ──────────────────────────
    a=1                           {"a": "1"}                   {"a": "1"}
    a=1&a=2                       {"a": ["1", "2"]}            {"a": ["1", "2"]}
    user[name]=Ada                {"user": {"name": "Ada"}}    {"user[name]": "Ada"}
    tags[]=x&tags[]=y             {"tags": ["x", "y"]}         {"tags[]": ["x", "y"]}
    a[b][c]=1                     {"a": {"b": {"c": "1"}}}     {"a[b][c]": "1"}

=============================================================================
REJECTIONS
=============================================================================

    413  body larger than ``limit`` (default 100 KiB)
    413  more than ``parameter_limit`` fields
    415  charset other than UTF-8 family / unknown charset
    400  bytes that do not decode in the declared charset

=============================================================================
"""

import codecs
import logging
import re
from typing import Any, Dict, List
from urllib.parse import parse_qsl

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, error_response
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

DEFAULT_LIMIT = 100 * 1024

# "user[name][first]" → base "user", brackets "[name][first]"
_BRACKET_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")
_BRACKET_PART = re.compile(r"\[([^\[\]]*)\]")


class FormParseError(Exception):
    """A body that cannot be turned into form fields."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def parse_form(
    body: bytes,
    charset: str = "utf-8",
    extended: bool = True,
    parameter_limit: int = 1000,
) -> Dict[str, Any]:
    """
    Parse a urlencoded body.

    Args:
        body: Raw request body
        charset: Declared charset of the body
        extended: Expand bracket keys into nested dicts and lists
        parameter_limit: Most fields accepted

    Raises:
        FormParseError: Undecodable body, bad charset or too many fields
    """
    try:
        codec = codecs.lookup(charset).name
    except LookupError:
        raise FormParseError(f"Unsupported charset: {charset}", status_code=415)
    if not codec.startswith("utf-8"):
        raise FormParseError(f"Unsupported charset: {charset}", status_code=415)

    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        raise FormParseError("Request body is not valid UTF-8")

    if not text:
        return {}

    if text.count("&") + 1 > parameter_limit:
        raise FormParseError("Too many parameters", status_code=413)

    try:
        pairs = parse_qsl(text, keep_blank_values=True, errors="strict")
    except UnicodeDecodeError:
        raise FormParseError("Percent-encoded bytes are not valid UTF-8")

    form: Dict[str, Any] = {}
    for key, value in pairs:
        if not key:
            continue
        match = _BRACKET_KEY.match(key) if extended else None
        if match:
            path = [match.group(1)] + _BRACKET_PART.findall(match.group(2))
        else:
            path = [key]
        _assign(form, path, value)
    return form


def _assign(target: Dict[str, Any], path: List[str], value: str) -> None:
    """
    Store value at the nested location named by path.

        _assign(form, ["user", "name"], "Ada")   form["user"]["name"] = "Ada"
        _assign(form, ["tags", ""], "x")         form["tags"].append("x")
        _assign(form, ["a"], "2")                repeated key becomes a list
    """
    key, rest = path[0], path[1:]

    if not rest:
        if key not in target:
            target[key] = value
        elif isinstance(target[key], list):
            target[key].append(value)
        else:
            target[key] = [target[key], value]
        return

    if rest[0] == "":
        items = target.get(key)
        if not isinstance(items, list):
            items = [] if items is None else [items]
            target[key] = items
        if len(rest) == 1:
            items.append(value)
        else:
            child: Dict[str, Any] = {}
            items.append(child)
            _assign(child, rest[1:], value)
        return

    child = target.get(key)
    if not isinstance(child, dict):
        child = {}
        target[key] = child
    _assign(child, rest, value)


class BodyParser(Middleware):
    """
    Populates request.form from urlencoded bodies.

        pipeline.add(BodyParser(extended=True, limit=100 * 1024))
    """

    def __init__(
        self,
        extended: bool = True,
        limit: int = DEFAULT_LIMIT,
        parameter_limit: int = 1000,
    ):
        """
        Args:
            extended: Bracket-key expansion (see module docstring)
            limit: Largest accepted body in bytes
            parameter_limit: Most fields accepted in one body
        """
        self.extended = extended
        self.limit = limit
        self.parameter_limit = parameter_limit

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request.form = {}

        if request.content_type != FORM_CONTENT_TYPE or not request.body:
            return next(request)

        if len(request.body) > self.limit:
            logger.warning(
                f"Form body too large: {len(request.body)} > {self.limit} bytes"
            )
            return error_response(
                HTTPStatus.PAYLOAD_TOO_LARGE, "request entity too large"
            )

        try:
            request.form = parse_form(
                request.body,
                charset=request.charset,
                extended=self.extended,
                parameter_limit=self.parameter_limit,
            )
        except FormParseError as e:
            logger.info(f"Rejected form body on {request.path}: {e}")
            return error_response(HTTPStatus(e.status_code), str(e))

        return next(request)
