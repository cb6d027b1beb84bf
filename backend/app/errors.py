from __future__ import annotations
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class ApiError(Exception):
    """
    Domain error rendered as {"ok": false, "error": <code>} with an HTTP status.
    Codes are stable strings the clients switch on (UNAUTHORIZED, NOT_ALLOWED, ...).
    """

    def __init__(self, code: str, status_code: int = 400, hint: str | None = None):
        super().__init__(code)
        self.code = code
        self.status_code = status_code
        self.hint = hint


def unauthorized() -> ApiError:
    return ApiError("UNAUTHORIZED", 401)

def not_allowed() -> ApiError:
    return ApiError("NOT_ALLOWED", 403)

def room_not_found() -> ApiError:
    return ApiError("ROOM_NOT_FOUND", 404)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    body: dict = {"ok": False, "error": exc.code}
    if exc.hint:
        body["hint"] = exc.hint
    return JSONResponse(status_code=exc.status_code, content=body)

async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"ok": False, "error": "INVALID_BODY"})
