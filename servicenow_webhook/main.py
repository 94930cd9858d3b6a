from dotenv import load_dotenv
load_dotenv(".env")  # load environment variables for local dev

import os
import sys
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError, version
from typing import Optional

from fastapi import FastAPI
from loguru import logger

from servicenow_webhook.api.webhooks import router as webhook_router
from servicenow_webhook.core.config import DEFAULT_CONFIG_FILE, load_config
from servicenow_webhook.core.incident import IncidentService
from servicenow_webhook.integrations.servicenow_client import ServiceNowClient

try:
    VERSION = version("alertmanager-webhook-servicenow")
except PackageNotFoundError:  # running from a source checkout
    VERSION = "0+unknown"


def configure_logging(level: Optional[str] = None) -> None:
    logger.remove()  # drop the default stderr handler
    logger.configure(extra={"service": "servicenow-webhook"})
    logger.add(
        sys.stdout,
        format="{time:YYYY-MM-DDTHH:mm:ss.SSS}Z [{extra[service]}] {level}: {message}",
        level=level or os.getenv("LOG_LEVEL", "INFO"),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info(f"Starting webhook, version {VERSION}")

    client = None
    if app.state.incident_service is None:
        config = load_config(os.getenv("SERVICENOW_CONFIG_FILE", DEFAULT_CONFIG_FILE))
        client = ServiceNowClient.from_config(config.service_now)
        app.state.incident_service = IncidentService(config, client)

    yield

    if client is not None:
        await client.aclose()
    logger.info("Webhook shutdown")


def create_app(service: Optional[IncidentService] = None) -> FastAPI:
    """Build the app. Without `service`, config and client are set up at startup."""
    app = FastAPI(title="Alertmanager webhook for ServiceNow", version=VERSION, lifespan=lifespan)
    app.state.incident_service = service
    app.include_router(webhook_router)
    return app


app = create_app()
