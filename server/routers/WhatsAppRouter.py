"""WhatsApp router for inbound gateway webhooks.

The gateway calls POST /api/whatsapp/webhook/{instance} for every event of
that instance. Events are acknowledged with 200 even when the reply could
not be delivered, so the gateway does not retry them.
"""

from fastapi import APIRouter, Request

from server.models.requests import CheckNumberRequest, SendTestRequest, WebhookEvent
from server.models.responses import WebhookAck

router = APIRouter(prefix="/api/whatsapp", tags=["whatsapp"])


@router.post("/webhook/{instance}")
async def whatsapp_webhook(request: Request, instance: str, body: WebhookEvent) -> WebhookAck:
    """Handle one gateway event.

    Args:
        request (Request): FastAPI request (provides app.state.whatsapp_service).
        instance (str): Gateway instance name, used for the reply.
        body (WebhookEvent): The event payload.

    Returns:
        WebhookAck: What happened to the event.
    """
    request.app.state.logging.debug("Webhook event %r received for instance %s", body.event, instance)
    return await request.app.state.whatsapp_service.handle_event(instance, body)


@router.post("/send-test")
async def send_test(request: Request, body: SendTestRequest) -> dict:
    result = await request.app.state.whatsapp_service.send_test_message(body.instance, body.number, body.message)
    return {"success": True, "data": result}


@router.post("/check-number")
async def check_number(request: Request, body: CheckNumberRequest) -> dict:
    return await request.app.state.whatsapp_service.check_number(body.instance, body.number)
