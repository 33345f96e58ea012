from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(data=None, message="OK", status=200):
    # None stays null so "not found" reads differently from an empty result
    return JSONResponse(
        status_code=status,
        content={
            "ok": True,
            "data": jsonable_encoder(data),
            "error": None,
            "message": message,
        }
    )


def error_response(error_code, status=400, message="An error occurred", data=None):
    return JSONResponse(
        status_code=status,
        content={
            "ok": False,
            "data": jsonable_encoder(data) if data is not None else {},
            "error": error_code,
            "message": message,
        }
    )
