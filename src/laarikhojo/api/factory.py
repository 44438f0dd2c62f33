"""FastAPI application factory."""

from fastapi import FastAPI, Request, Response

from laarikhojo import __version__
from laarikhojo.observability.correlation import (
    CORRELATION_ID_HEADER,
    bound_correlation_id,
)

from .routers import public
from .routes import vendor_locations, webhooks_whatsapp


async def _bind_request_correlation_id(request: Request, call_next) -> Response:
    """Run the request under the caller's X-Correlation-ID (or a new one) and echo it."""
    with bound_correlation_id(request.headers.get(CORRELATION_ID_HEADER, "")) as cid:
        response = await call_next(request)
    response.headers[CORRELATION_ID_HEADER] = cid
    return response


def create_app() -> FastAPI:
    """Build the app: health probes, the WhatsApp webhook and the vendor map feed."""
    app = FastAPI(
        title="Laari Khojo",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )
    app.middleware("http")(_bind_request_correlation_id)

    for router in (public.router, webhooks_whatsapp.router, vendor_locations.router):
        app.include_router(router)

    return app
