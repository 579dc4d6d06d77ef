from flask import request


def json_body():
    """Request JSON as a dict; anything else reads as an empty body."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
