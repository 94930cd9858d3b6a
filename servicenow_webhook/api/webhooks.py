import json

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse
from loguru import logger
from pydantic import ValidationError

from servicenow_webhook.core.errors import BadRequestError, ServiceNowError
from servicenow_webhook.core.incident import IncidentService
from servicenow_webhook.core.schemas import AlertmanagerPayload, WebhookResponse

router = APIRouter()

HOMEPAGE = """<html>
<head><title>alertmanager-webhook-servicenow</title></head>
<body>
<h1>alertmanager-webhook-servicenow</h1>
<p>Alertmanager webhook endpoint: <code>POST /webhook</code></p>
</body>
</html>"""


def parse_alert_group(body: bytes) -> AlertmanagerPayload:
    try:
        payload_json = json.loads(body)
    except ValueError as e:
        raise BadRequestError(str(e)) from e

    try:
        return AlertmanagerPayload.model_validate(payload_json)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}" for err in e.errors()
        )
        raise BadRequestError(details) from e


def send_json_response(status: int, message: str) -> JSONResponse:
    body = WebhookResponse(Status=status, Message=message)
    return JSONResponse(status_code=status, content=body.model_dump())


@router.get("/", response_class=HTMLResponse)
async def homepage():
    return HOMEPAGE


@router.get("/health")
async def health():
    return {"status": "healthy"}


@router.post("/webhook")
async def alertmanager_webhook(req: Request):
    try:
        payload = parse_alert_group(await req.body())
    except BadRequestError as e:
        logger.error(f"Error reading request body : {e}")
        return send_json_response(400, str(e))

    service: IncidentService = req.app.state.incident_service
    try:
        await service.handle_alert_group(payload)
    except ServiceNowError as e:
        logger.error(f"Error managing incident from alert : {e}")
        return send_json_response(500, str(e))
    except Exception as e:
        logger.exception(f"Unexpected error managing incident from alert : {e}")
        return send_json_response(500, str(e))

    return send_json_response(200, "Success")
