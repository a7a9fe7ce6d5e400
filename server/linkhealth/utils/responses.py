# server/linkhealth/utils/responses.py

from typing import Any, Optional

from flask import jsonify


def success(data: Any = None, message: Optional[str] = None, status: int = 200):
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def error(message: str, status: int = 400, code: Optional[str] = None):
    body = {"success": False, "error": code or "ERROR", "message": message}
    return jsonify(body), status
