"""
Kiwify webhook receiver.

Validates the HMAC signature over the raw body before anything else, applies
the event synchronously and only returns 200 once it is committed, so a
non-200 makes Kiwify redeliver.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.webhooks import WebhookResponse
from app.integrations.kiwify import SIGNATURE_HEADER
from app.services.kiwify_webhook import ingest_webhook
from app.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


async def raw_body(request: Request) -> bytes:
    """Exact bytes Kiwify signed; a parsed-and-reserialized body would not match."""
    return await request.body()


@router.post("/kiwify", response_model=WebhookResponse)
def kiwify_webhook(
    body: bytes = Depends(raw_body),
    signature: Optional[str] = Header(None, alias=SIGNATURE_HEADER),
    db: Session = Depends(get_db),
):
    """Receive Kiwify purchase/subscription events."""
    outcome = ingest_webhook(db, body, signature, settings.kiwify_webhook_secret)
    return WebhookResponse(message=outcome.message)
