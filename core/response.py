from fastapi.encoders import jsonable_encoder


def ok(data=None):
    """Standard success envelope; pydantic models and datetimes are encoded to JSON types."""
    return {"ok": True, "data": jsonable_encoder(data), "error": None}


def error(code: str = "internal_error", message: str = "An internal error occurred"):
    """Standard error envelope: {"ok": false, "error": {"code", "message"}}."""
    return {"ok": False, "data": None, "error": {"code": code, "message": message}}
