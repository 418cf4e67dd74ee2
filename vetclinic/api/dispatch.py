"""Single ``/api`` entry point; the ``action`` parameter picks the handler."""

from __future__ import annotations

import logging
from typing import Callable

from flask import Blueprint, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from ..errors import BusinessRuleError, ClinicError
from ..extensions import db
from ..services import ClinicService

log = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)

ACTIONS: dict[str, Callable[[dict], tuple]] = {}

clinic = ClinicService()


def action(name: str):
    def register(fn):
        ACTIONS[name] = fn
        return fn

    return register


def ok(status: int = 200, **payload):
    return jsonify({"ok": True, **payload}), status


def fail(message: str, status: int = 400):
    return jsonify({"ok": False, "error": message}), status


def read_input() -> dict:
    """JSON body over query args, or form values over query args.

    ``key[]`` form fields and repeated keys come back as lists.
    """
    if request.is_json:
        body = request.get_json(silent=True)
        data = request.args.to_dict()
        if isinstance(body, dict):
            data.update(body)
        return data
    out = {}
    for key in request.values.keys():
        values = request.values.getlist(key)
        if key.endswith("[]"):
            out[key[:-2]] = values
        else:
            out[key] = values if len(values) > 1 else values[0]
    return out


def require_id(data: dict, key: str = "id") -> int:
    try:
        value = int(data.get(key) or 0)
    except (TypeError, ValueError):
        value = 0
    if value <= 0:
        raise BusinessRuleError(f"{key} is required")
    return value


@api_bp.route("/api", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
def dispatch():
    data = read_input()
    name = str(data.get("action") or "").strip()
    g.api_action = name or None
    if not name:
        return fail("action parameter is required", 400)
    handler = ACTIONS.get(name)
    if handler is None:
        return fail(f"unknown action: {name}", 400)
    return handler(data)


@api_bp.errorhandler(ClinicError)
def _clinic_error(err: ClinicError):
    return jsonify(err.to_payload()), err.status_code


@api_bp.errorhandler(SQLAlchemyError)
def _storage_error(err: SQLAlchemyError):
    db.session.rollback()
    log.exception("Storage failure on action %s", g.get("api_action"))
    return fail("Database error", 500)


@api_bp.errorhandler(Exception)
def _unexpected_error(err: Exception):
    if isinstance(err, HTTPException):
        return fail(err.description or err.name, err.code or 500)
    log.exception("Unhandled error on action %s", g.get("api_action"))
    return fail("Server error", 500)
