"""Map ordering exceptions onto HTTP responses.

Protean's own handlers cover ``ValidationError`` (400). The handlers below
take precedence for the more specific ordering errors.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import AllocationConflict, ServiceUnavailable, TerminalStateViolation


def register_ordering_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)

    @app.exception_handler(TerminalStateViolation)
    async def terminal_state_handler(request: Request, exc: TerminalStateViolation) -> JSONResponse:
        return JSONResponse(status_code=409, content={"error": exc.messages})

    @app.exception_handler(ObjectNotFoundError)
    async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(ServiceUnavailable)
    @app.exception_handler(AllocationConflict)
    async def unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=503, content={"error": str(exc)})
