"""
Kiwify webhook processing.

Per transaction_id: unknown -> recorded(approved) -> access_granted
                    -> recorded(refunded) -> access_revoked

Purchases are upserted by transaction_id and grants by (student_id, course_id),
so redelivering an event leaves the data as if it had been applied once.
Events are applied in arrival order; a refund arriving before its approval
fails because there is no purchase to update.

Lookups that find nothing (unmapped product, unknown buyer, buyer without a
student record) are expected outcomes: the purchase stays recorded and the
webhook is acknowledged.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import AuthenticationError, PersistenceError, ServiceError
from app.integrations.kiwify import (
    GRANT_EVENTS,
    REVOKE_EVENTS,
    KiwifyEventData,
    parse_payload,
    verify_signature,
)
from app.models.event import EventStatus, WebhookEvent
from app.models.kiwify import KiwifyProduct, KiwifyPurchase, StudentCourse
from app.models.profile import Profile
from app.models.student import Student

logger = logging.getLogger(__name__)

ACTION_GRANTED = "granted"
ACTION_REVOKED = "revoked"
ACTION_RECORDED = "recorded"
ACTION_IGNORED = "ignored"

PROCESSED_MESSAGE = "Webhook processed successfully"


@dataclass
class WebhookOutcome:
    message: str
    action: str


def _resolve_course_id(db: Session, kiwify_product_id: Optional[str]) -> Optional[str]:
    if not kiwify_product_id:
        return None
    mapping = db.query(KiwifyProduct).filter(KiwifyProduct.kiwify_product_id == kiwify_product_id).first()
    return mapping.course_id if mapping else None


def _resolve_buyer(db: Session, email: Optional[str]) -> Optional[Profile]:
    if not email:
        return None
    return db.query(Profile).filter(func.lower(Profile.email) == email.strip().lower()).first()


def _resolve_student(db: Session, user_id: str) -> Optional[Student]:
    return db.query(Student).filter(Student.user_id == user_id).first()


def _apply_purchase_fields(purchase: KiwifyPurchase, event: KiwifyEventData, user_id: Optional[str]) -> None:
    purchase.kiwify_product_id = event.kiwify_product_id
    purchase.buyer_email = event.buyer_email
    purchase.purchase_date = event.purchase_date
    purchase.status = event.status
    purchase.amount = event.amount
    if user_id and not purchase.user_id:
        purchase.user_id = user_id


def upsert_purchase(db: Session, event: KiwifyEventData, user_id: Optional[str] = None) -> KiwifyPurchase:
    """
    Insert the purchase or overwrite its fields when the transaction is already known.

    user_id is only filled in when the purchase is not linked to a profile yet.
    Must be the first write of the transaction: when a concurrent delivery
    inserts the same transaction first, the session is rolled back and the
    winner's row is updated instead.
    """
    purchase = db.query(KiwifyPurchase).filter(KiwifyPurchase.transaction_id == event.transaction_id).first()
    if purchase is None:
        purchase = KiwifyPurchase(transaction_id=event.transaction_id)
        _apply_purchase_fields(purchase, event, user_id)
        db.add(purchase)
        try:
            db.flush()
            return purchase
        except IntegrityError:
            db.rollback()
            logger.info("Purchase %s inserted concurrently, updating instead", event.transaction_id)
            purchase = db.query(KiwifyPurchase).filter(KiwifyPurchase.transaction_id == event.transaction_id).one()

    _apply_purchase_fields(purchase, event, user_id)
    db.flush()
    return purchase


def grant_course_access(db: Session, student_id: str, course_id: str) -> StudentCourse:
    """Upsert the (student, course) access grant."""
    grant = db.query(StudentCourse).filter(
        StudentCourse.student_id == student_id,
        StudentCourse.course_id == course_id,
    ).first()
    now = datetime.now(timezone.utc)
    if grant is None:
        grant = StudentCourse(student_id=student_id, course_id=course_id, access_granted_at=now)
        db.add(grant)
    else:
        grant.access_granted_at = now
    db.flush()
    return grant


def revoke_course_access(db: Session, student_id: str, course_id: str) -> bool:
    deleted = db.query(StudentCourse).filter(
        StudentCourse.student_id == student_id,
        StudentCourse.course_id == course_id,
    ).delete(synchronize_session=False)
    return deleted > 0


def handle_grant_event(db: Session, event: KiwifyEventData) -> WebhookOutcome:
    course_id = _resolve_course_id(db, event.kiwify_product_id)
    buyer = _resolve_buyer(db, event.buyer_email) if course_id else None

    purchase = upsert_purchase(db, event, user_id=buyer.id if buyer else None)

    if course_id is None:
        logger.warning("Kiwify product %s not mapped to an internal course", event.kiwify_product_id)
        return WebhookOutcome("Product not mapped, purchase recorded.", ACTION_RECORDED)

    if not purchase.user_id:
        logger.warning(
            "User with email %s not found in profiles. Access not granted automatically.",
            event.buyer_email,
        )
        return WebhookOutcome("User not found, purchase recorded.", ACTION_RECORDED)

    student = _resolve_student(db, purchase.user_id)
    if student is None:
        logger.warning("User %s is not linked to a student profile. Access not granted.", purchase.user_id)
        return WebhookOutcome("User is not a student, access not granted.", ACTION_RECORDED)

    grant_course_access(db, student.id, course_id)
    logger.info("Access granted for student %s to course %s", student.id, course_id)
    return WebhookOutcome(PROCESSED_MESSAGE, ACTION_GRANTED)


def handle_revoke_event(db: Session, event: KiwifyEventData) -> WebhookOutcome:
    purchase = db.query(KiwifyPurchase).filter(KiwifyPurchase.transaction_id == event.transaction_id).first()
    if purchase is None:
        logger.error(
            "Kiwify %s for unknown transaction %s: no purchase recorded",
            event.event_type, event.transaction_id,
        )
        raise PersistenceError(
            f"Erro ao atualizar status de reembolso: compra {event.transaction_id} não encontrada"
        )

    purchase.status = event.status
    db.flush()

    if not purchase.user_id:
        logger.info("Purchase %s has no linked user, nothing to revoke", purchase.transaction_id)
        return WebhookOutcome(PROCESSED_MESSAGE, ACTION_RECORDED)

    course_id = _resolve_course_id(db, purchase.kiwify_product_id)
    if course_id is None:
        logger.warning(
            "Refunded Kiwify product %s not mapped. Cannot remove access.", purchase.kiwify_product_id
        )
        return WebhookOutcome(PROCESSED_MESSAGE, ACTION_RECORDED)

    student = _resolve_student(db, purchase.user_id)
    if student is None:
        logger.warning("User %s is not linked to a student profile. Cannot remove access.", purchase.user_id)
        return WebhookOutcome(PROCESSED_MESSAGE, ACTION_RECORDED)

    revoke_course_access(db, student.id, course_id)
    logger.info("Access removed for student %s from course %s", student.id, course_id)
    return WebhookOutcome(PROCESSED_MESSAGE, ACTION_REVOKED)


def _audit_row(event: KiwifyEventData, status: EventStatus, message: str) -> WebhookEvent:
    return WebhookEvent(
        provider="kiwify",
        event_type=event.event_type,
        transaction_id=event.transaction_id,
        payload=event.raw_payload,
        status=status,
        message=message,
    )


def _record_failure(db: Session, event: KiwifyEventData, message: str) -> None:
    """Keep a failed-delivery row for later inspection; never masks the original error."""
    try:
        db.add(_audit_row(event, EventStatus.FAILED, message))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Could not record failed Kiwify event %s: %s", event.transaction_id, e)


def process_event(db: Session, event: KiwifyEventData) -> WebhookOutcome:
    """Apply one parsed event and commit it together with its audit row."""
    logger.info("Kiwify webhook received: %s for transaction %s", event.event_type, event.transaction_id)

    try:
        if event.event_type in GRANT_EVENTS:
            outcome = handle_grant_event(db, event)
        elif event.event_type in REVOKE_EVENTS:
            outcome = handle_revoke_event(db, event)
        else:
            logger.info("Unhandled Kiwify event type: %s", event.event_type)
            outcome = WebhookOutcome("Unhandled event type, acknowledged.", ACTION_IGNORED)

        status = EventStatus.IGNORED if outcome.action == ACTION_IGNORED else EventStatus.PROCESSED
        db.add(_audit_row(event, status, outcome.message))
        db.commit()
        return outcome
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error processing Kiwify %s %s: %s", event.event_type, event.transaction_id, e)
        error = PersistenceError(f"Erro ao processar webhook: {e}")
        _record_failure(db, event, error.message)
        raise error from e
    except ServiceError as e:
        db.rollback()
        _record_failure(db, event, e.message)
        raise


def ingest_webhook(
    db: Session,
    raw_body: bytes,
    signature: Optional[str],
    secret: Optional[str],
) -> WebhookOutcome:
    """Authenticate, parse and apply one Kiwify delivery."""
    if not signature:
        raise AuthenticationError("Webhook signature missing")
    if not secret:
        logger.error("KIWIFY_WEBHOOK_SECRET not configured; rejecting webhook")
    if not verify_signature(raw_body, signature, secret):
        logger.warning("Invalid Kiwify webhook signature")
        raise AuthenticationError("Invalid webhook signature")

    event = parse_payload(raw_body)
    return process_event(db, event)
