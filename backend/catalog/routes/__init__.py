from flask import request

from ..validation import ValidationError


def json_object() -> dict:
    """Request JSON body as a dict; an absent body is {}, a non-object body is rejected."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data
