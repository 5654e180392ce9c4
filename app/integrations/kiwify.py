"""
Kiwify webhook parsing and signature validation.

Webhook auth: X-Kiwify-Signature header carries the hex HMAC-SHA256 of the raw
request body, keyed with the shared secret configured in the Kiwify dashboard.
"""
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional

from app.exceptions import PayloadError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Kiwify-Signature"

MAX_AMOUNT = Decimal("1e10")

# Kiwify event types
PURCHASE_APPROVED = "purchase_approved"
SUBSCRIPTION_ACTIVATED = "subscription_activated"
PURCHASE_REFUNDED = "purchase_refunded"
SUBSCRIPTION_CANCELED = "subscription_canceled"

GRANT_EVENTS = {PURCHASE_APPROVED, SUBSCRIPTION_ACTIVATED}
REVOKE_EVENTS = {PURCHASE_REFUNDED, SUBSCRIPTION_CANCELED}
SUPPORTED_EVENTS = GRANT_EVENTS | REVOKE_EVENTS

# Purchase status recorded when the payload carries none
DEFAULT_STATUS = {
    PURCHASE_APPROVED: "approved",
    SUBSCRIPTION_ACTIVATED: "approved",
    PURCHASE_REFUNDED: "refunded",
    SUBSCRIPTION_CANCELED: "canceled",
}


@dataclass
class KiwifyEventData:
    """Parsed Kiwify event with the fields we care about"""
    event_type: str
    transaction_id: Optional[str]
    kiwify_product_id: Optional[str]
    buyer_email: Optional[str]
    purchase_date: Optional[datetime]
    status: Optional[str]
    amount: Optional[Decimal]
    raw_payload: dict


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, header_value: Optional[str], secret: Optional[str]) -> bool:
    """Validate the X-Kiwify-Signature header against the body and configured secret"""
    if not header_value or not secret:
        return False
    expected = compute_signature(raw_body, secret)
    return hmac.compare_digest(header_value.strip().lower(), expected)


def is_supported_event(event_type: str) -> bool:
    return event_type in SUPPORTED_EVENTS


def _parse_datetime(value) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, bool):
        raise PayloadError(f"Invalid purchase_date: {value!r}")
    if isinstance(value, (int, float)):
        # epoch milliseconds
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise PayloadError(f"Invalid purchase_date: {value!r}")
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise PayloadError(f"Invalid purchase_date: {value!r}")


def _parse_amount(value) -> Optional[Decimal]:
    if value in (None, ""):
        return None
    if isinstance(value, bool):
        raise PayloadError(f"Invalid amount: {value!r}")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise PayloadError(f"Invalid amount: {value!r}")
    # kiwify_purchases.amount is NUMERIC(12, 2)
    if not amount.is_finite() or abs(amount) >= MAX_AMOUNT:
        raise PayloadError(f"Invalid amount: {value!r}")
    return amount


def parse_payload(raw_body: bytes) -> KiwifyEventData:
    """
    Parse a Kiwify webhook body into structured data.

    Shape: {"event": "...", "data": {"id", "product_id", "customer_email",
    "purchase_date", "status", "amount"}}. Handled events must carry data.id,
    the transaction id. Unhandled events only need "event".
    """
    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError) as e:
        raise PayloadError(f"Malformed webhook body: {e}") from e

    if not isinstance(payload, dict):
        raise PayloadError("Webhook body must be a JSON object")

    event_type = payload.get("event")
    if not event_type or not isinstance(event_type, str):
        raise PayloadError("Webhook body missing event type")

    data = payload.get("data") or {}
    if not isinstance(data, dict):
        raise PayloadError("Webhook data must be an object")

    transaction_id = data.get("id")
    if transaction_id is not None:
        transaction_id = str(transaction_id)

    if is_supported_event(event_type) and not transaction_id:
        raise PayloadError(f"Event {event_type} missing transaction id")

    product_id = data.get("product_id")

    return KiwifyEventData(
        event_type=event_type,
        transaction_id=transaction_id,
        kiwify_product_id=str(product_id) if product_id is not None else None,
        buyer_email=data.get("customer_email"),
        purchase_date=_parse_datetime(data.get("purchase_date")),
        status=data.get("status") or DEFAULT_STATUS.get(event_type),
        amount=_parse_amount(data.get("amount")),
        raw_payload=payload,
    )
