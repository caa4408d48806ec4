import logging

import uvicorn
from fastapi import FastAPI, Request, Response

from webhook_gateway.config import Settings, settings
from webhook_gateway.errors import GatewayError
from webhook_gateway.feature_webhook.routes import router as webhook_router
from webhook_gateway.logging import configure_logging

logger = logging.getLogger(__name__)


async def handle_gateway_error(request: Request, exc: GatewayError) -> Response:
    """Answers a failed delivery with its status code and an empty body."""
    logger.debug(
        "%s %s -> %s: %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.message,
    )
    return Response(status_code=exc.status_code)


async def handle_not_found(request: Request, exc: Exception) -> Response:
    logger.warning("No route for %s %s", request.method, request.url.path)
    return Response(status_code=404)


def create_app(config: Settings = settings) -> FastAPI:
    app = FastAPI(title=config.APP_TITLE)
    app.include_router(webhook_router)
    app.add_exception_handler(GatewayError, handle_gateway_error)
    app.add_exception_handler(404, handle_not_found)
    return app


app = create_app()


def run() -> None:
    """Entry point for the ``webhook-gateway`` console script."""
    configure_logging(settings.LOG_LEVEL)
    logger.info("Webserver listening on %s:%s.", settings.HOST, settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
