from functools import wraps

from flask import g, jsonify, request

from locadora.utils.constants import MAX_ID_LENGTH


def _failure(message, code="VALIDATION_ERROR", status=400, **extra):
    body = {"success": False, "error": message, "code": code}
    body.update(extra)
    return jsonify(body), status


def json_body(fn):
    """Require a JSON body on write requests and sanitize its strings."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not request.is_json:
            return _failure("Content-Type must be application/json",
                            code="INVALID_CONTENT_TYPE", status=415)
        g.body = sanitize(request.get_json())
        return fn(*args, **kwargs)

    return wrapper


def required_fields(*fields):
    """
    Reject bodies where any of ``fields`` is missing, null or blank.
    A field may be a tuple of accepted spellings, e.g. ("plate", "placaVeiculo").
    """
    groups = [(f,) if isinstance(f, str) else tuple(f) for f in fields]

    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            body = g.get("body")
            if not isinstance(body, dict):
                return _failure("Request body must be a JSON object")
            missing = [names[0] for names in groups
                       if all(body.get(n) in (None, "") for n in names)]
            if missing:
                return _failure(f"Missing required fields: {', '.join(missing)}", fields=missing)
            return fn(*args, **kwargs)

        return wrapper

    return deco


def valid_path_id(param="id"):
    """Reject blank or oversized path identifiers before they reach the engine."""

    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            value = (kwargs.get(param) or "").strip()
            if not value:
                return _failure(f"{param} is required", field=param)
            if len(value) > MAX_ID_LENGTH:
                return _failure(f"{param} is too long", field=param)
            kwargs[param] = value
            return fn(*args, **kwargs)

        return wrapper

    return deco


def sanitize(obj):
    """Trim strings and drop '<' / '>' recursively."""
    if isinstance(obj, str):
        return obj.strip().replace("<", "").replace(">", "")
    if isinstance(obj, list):
        return [sanitize(v) for v in obj]
    if isinstance(obj, dict):
        return {k: sanitize(v) for k, v in obj.items()}
    return obj
