from __future__ import annotations

import logging

from flask import Flask, g, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class CrmError(Exception):
    """Base for errors a handler maps to a `{"message": ...}` JSON body."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CrmError):
    status_code = 400


class ConflictError(CrmError):
    status_code = 400


class NotFoundError(CrmError):
    status_code = 404


def store_error_message(e: SQLAlchemyError) -> str:
    orig = getattr(e, "orig", None)
    return str(orig) if orig is not None else str(e)


def _rollback_request_session() -> None:
    s = getattr(g, "db_session", None)
    if s is not None:
        s.rollback()


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(CrmError)
    def _crm_error(e: CrmError):
        _rollback_request_session()
        return jsonify({"message": e.message}), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def _store_error(e: SQLAlchemyError):
        _rollback_request_session()
        logger.exception("Store failure: %s", e)
        return jsonify({"error": store_error_message(e)}), 500

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        return jsonify({"message": e.description}), e.code

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        _rollback_request_session()
        logger.exception("Unhandled 500: %s", e)
        return jsonify({"message": "Something went wrong!"}), 500
