"""FastAPI webhook server for Twitter mention deliveries."""

import json
import logging

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .service import TwitterService

logger = logging.getLogger(__name__)


def create_webhook_app(service: TwitterService) -> FastAPI:
    """Create and configure the FastAPI webhook application.

    Args:
        service: TwitterService that ingests delivered tweets

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Twitter Adaptor Webhooks",
        description="Twitter webhook receiver for mention ingestion",
        version="1.0.0",
    )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "twitter-adaptor-webhooks",
            "polling": "on" if service.polling else "off",
        }

    @app.post("/webhook")
    async def twitter_webhook(
        request: Request,
        background_tasks: BackgroundTasks,
    ) -> JSONResponse:
        """Acknowledge a webhook delivery and ingest it in the background.

        Schema validation happens during ingestion; invalid payloads are
        logged and dropped there, never reported back to the sender.
        """
        body = await request.body()

        try:
            payload = json.loads(body.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error("Failed to parse webhook payload: %s", e)
            raise HTTPException(status_code=400, detail="Invalid JSON payload")

        background_tasks.add_task(service.handle_webhook_payload, payload)

        logger.info("Accepted webhook delivery")
        return JSONResponse({"status": "accepted"}, status_code=200)

    return app
