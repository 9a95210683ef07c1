"""Map checkout errors to HTTP responses.

Protean's own handlers (``register_exception_handlers``) cover
``ValidationError`` and ``ObjectNotFoundError``; this adds the checkout
taxonomy on top.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from checkout.errors import CheckoutError

logger = structlog.get_logger(__name__)


async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    logger.info(
        "Checkout request rejected",
        path=request.url.path,
        error=exc.kind,
        message=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(CheckoutError, checkout_error_handler)
