"""Shared API utilities."""
from fastapi import HTTPException, Request

from tabroom.exceptions import (
    ConfirmationRequired,
    NotFoundError,
    ProgressionError,
    TabroomError,
)


async def get_session(request: Request):
    """Dependency yielding a session from the app's session factory."""
    async with request.app.state.session_factory() as session:
        yield session


def http_error(e: TabroomError) -> HTTPException:
    """Map a service error to the HTTP response the operator sees."""
    if isinstance(e, NotFoundError):
        return HTTPException(404, str(e))
    if isinstance(e, ConfirmationRequired):
        return HTTPException(409, {"message": str(e), "confirm": e.flag})
    if isinstance(e, ProgressionError):
        return HTTPException(409, {"message": str(e), "round_id": e.round_id, "round_name": e.round_name})
    return HTTPException(400, str(e))
