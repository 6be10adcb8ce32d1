# --- expo_coupon/utils/api.py ---
from flask import jsonify


def api_ok(message=None, data=None):
    body = dict(data or {})
    if message:
        body["message"] = message
    return body


def api_error(message, data=None):
    return {"error": message, **(data or {})}


# unified response helper
def ok(message=None, data=None, status_code=200):
    resp = jsonify(api_ok(message, data))
    resp.status_code = status_code
    return resp
