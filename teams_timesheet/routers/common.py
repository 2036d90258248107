from fastapi.responses import JSONResponse
from teams_timesheet.schemas.base import ErrorResponse


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message).model_dump(by_alias=True)
    )


def bad_request(message: str) -> JSONResponse:
    return error_response(400, message)
