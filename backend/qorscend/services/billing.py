"""Subscription, invoice, payment method and billing address services."""

from __future__ import annotations

import logging
import random
import time
from datetime import datetime, timedelta, timezone
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.orm import Session

from .. import models, schemas
from ..catalog import UNLIMITED, Catalog, PlanTier
from ..errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

# purpose: orchestrate plan tiers, subscriptions, invoices and stored payment details
# status: active
# depends_on: qorscend.catalog.Catalog, qorscend.models.Subscription

BILLING_PERIOD = timedelta(days=30)
BYTES_PER_MB = 1024 * 1024


class BillingError(ValidationError):
    """Base error for billing flows."""


class PlanNotFound(BillingError):
    """Raised when a requested plan id is not in the catalog."""


class SubscriptionNotFound(NotFound):
    """Raised when a subscription is required but unavailable."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _compute_default_renewal(now: datetime) -> datetime:
    return now + BILLING_PERIOD


def _generate_invoice_number() -> str:
    return f"INV-{int(time.time() * 1000)}-{random.randint(0, 999_999_999):09d}"


def resolve_plan(catalog: Catalog, plan_id: str | None) -> PlanTier:
    if not plan_id:
        raise BillingError("Plan ID is required")
    plan = catalog.plan(plan_id)
    if plan is None:
        raise PlanNotFound("Invalid plan ID")
    return plan


def get_subscription(db: Session, user_id: UUID) -> models.Subscription | None:
    return db.query(models.Subscription).filter(models.Subscription.user_id == user_id).one_or_none()


def get_or_create_subscription(db: Session, user_id: UUID) -> models.Subscription:
    subscription = get_subscription(db, user_id)
    if subscription is None:
        subscription = models.Subscription(user_id=user_id, tier="free", status="active", provider="mock")
        db.add(subscription)
        db.flush()
        logger.info("created free subscription for user %s", user_id)
    return subscription


def storage_used_mb(db: Session, user_id: UUID) -> float:
    total = (
        db.query(sa.func.coalesce(sa.func.sum(models.DataFile.file_size), 0))
        .filter(models.DataFile.user_id == user_id)
        .scalar()
    )
    return round((total or 0) / BYTES_PER_MB, 2)


def _usage_line(used: float, limit: int) -> schemas.UsageLine:
    if limit == UNLIMITED:
        return schemas.UsageLine(used=used, limit=None, unlimited=True)
    return schemas.UsageLine(used=used, limit=limit)


def build_overview(db: Session, catalog: Catalog, user_id: UUID) -> schemas.BillingOverviewOut:
    """Compose the billing read-model; limits are advisory and never enforced."""

    subscription = get_or_create_subscription(db, user_id)
    if subscription.current_period_end is None:
        subscription.current_period_end = _compute_default_renewal(_now())
        db.add(subscription)

    def count(model) -> int:
        return db.query(sa.func.count(model.id)).filter(model.user_id == user_id).scalar() or 0

    plan = catalog.plan(subscription.tier) or catalog.plan("free")
    limits = plan.limits
    usage = {
        "codeConversions": _usage_line(count(models.CodeConversion), limits.code_conversions),
        "benchmarks": _usage_line(0, limits.benchmarks),
        "dataFiles": _usage_line(count(models.DataFile), limits.data_files),
        "storage": _usage_line(storage_used_mb(db, user_id), limits.storage),
        "workflows": _usage_line(count(models.Workflow), limits.workflows),
    }
    return schemas.BillingOverviewOut(
        subscription=schemas.SubscriptionOut(
            tier=subscription.tier,
            status=subscription.status,
            current_period_end=subscription.current_period_end,
            next_billing_date=subscription.current_period_end,
            amount=plan.price,
            currency=plan.currency,
        ),
        usage=usage,
    )


def change_plan(db: Session, catalog: Catalog, user_id: UUID, plan_id: str | None) -> models.Subscription:
    plan = resolve_plan(catalog, plan_id)
    subscription = get_or_create_subscription(db, user_id)
    subscription.tier = plan.id
    subscription.status = "active"
    subscription.current_period_end = _compute_default_renewal(_now())
    db.add(subscription)
    db.flush()
    logger.info("user %s moved to plan %s", user_id, plan.id)
    return subscription


def upgrade_plan(
    db: Session, catalog: Catalog, user_id: UUID, plan_id: str | None
) -> tuple[models.Subscription, models.Invoice | None]:
    """Change plan and bill it: one invoice when the new tier has a price, none otherwise."""

    plan = resolve_plan(catalog, plan_id)
    subscription = change_plan(db, catalog, user_id, plan.id)
    invoice = None
    if plan.is_paid:
        now = _now()
        invoice = models.Invoice(
            user_id=user_id,
            number=_generate_invoice_number(),
            status="paid",
            plan=plan.id,
            date=now,
            due_date=now + BILLING_PERIOD,
            amount=plan.price,
            currency=plan.currency,
        )
        db.add(invoice)
        db.flush()
        logger.info("issued invoice %s for user %s", invoice.number, user_id)
    return subscription, invoice


def cancel_subscription(db: Session, user_id: UUID) -> models.Subscription:
    subscription = get_subscription(db, user_id)
    if subscription is None:
        raise SubscriptionNotFound("No active subscription found")
    subscription.tier = "free"
    subscription.status = "canceled"
    subscription.current_period_end = None
    db.add(subscription)
    db.flush()
    logger.info("user %s canceled subscription", user_id)
    return subscription


def list_invoices(db: Session, user_id: UUID) -> list[models.Invoice]:
    return (
        db.query(models.Invoice)
        .filter(models.Invoice.user_id == user_id)
        .order_by(models.Invoice.date.desc())
        .all()
    )


# Payment methods


def list_payment_methods(db: Session, user_id: UUID) -> list[models.PaymentMethod]:
    return (
        db.query(models.PaymentMethod)
        .filter(models.PaymentMethod.user_id == user_id)
        .order_by(models.PaymentMethod.is_default.desc(), models.PaymentMethod.created_at.desc())
        .all()
    )


def _owned_payment_method(db: Session, user_id: UUID, method_id: UUID) -> models.PaymentMethod:
    method = (
        db.query(models.PaymentMethod)
        .filter(models.PaymentMethod.id == method_id, models.PaymentMethod.user_id == user_id)
        .one_or_none()
    )
    if method is None:
        raise NotFound("Payment method not found")
    return method


def add_payment_method(
    db: Session, user_id: UUID, payload: schemas.PaymentMethodCreate
) -> models.PaymentMethod:
    if not payload.type:
        raise ValidationError("Payment method type is required")
    if payload.type == "card" and (not payload.last4 or not payload.brand):
        raise ValidationError("Card number and brand are required for card payment methods")
    if payload.type == "paypal" and not payload.email:
        raise ValidationError("Email is required for PayPal payment methods")

    has_methods = (
        db.query(models.PaymentMethod.id).filter(models.PaymentMethod.user_id == user_id).first()
        is not None
    )
    method = models.PaymentMethod(
        user_id=user_id,
        type=payload.type,
        brand=payload.brand,
        last4=payload.last4[-4:] if payload.last4 else None,
        email=payload.email,
        expiry_month=payload.expiry_month,
        expiry_year=payload.expiry_year,
        is_default=not has_methods,
    )
    db.add(method)
    db.flush()
    return method


def set_default_payment_method(db: Session, user_id: UUID, method_id: UUID) -> models.PaymentMethod:
    """Unset every other default, then set this one. Two writes, no lock."""

    method = _owned_payment_method(db, user_id, method_id)
    (
        db.query(models.PaymentMethod)
        .filter(models.PaymentMethod.user_id == user_id, models.PaymentMethod.id != method.id)
        .update({models.PaymentMethod.is_default: False}, synchronize_session=False)
    )
    method.is_default = True
    db.add(method)
    db.flush()
    return method


def delete_payment_method(db: Session, user_id: UUID, method_id: UUID) -> models.PaymentMethod | None:
    """Delete a method; when it was the default, promote the oldest remaining one."""

    method = _owned_payment_method(db, user_id, method_id)
    was_default = method.is_default
    db.delete(method)
    db.flush()
    if not was_default:
        return None
    successor = (
        db.query(models.PaymentMethod)
        .filter(models.PaymentMethod.user_id == user_id)
        .order_by(models.PaymentMethod.created_at.asc())
        .first()
    )
    if successor is not None:
        successor.is_default = True
        db.add(successor)
        db.flush()
    return successor


# Billing address

ADDRESS_FIELDS = ("first_name", "last_name", "address", "city", "state", "zip_code", "country")


def get_billing_address(db: Session, user_id: UUID) -> models.BillingAddress | None:
    return db.query(models.BillingAddress).filter(models.BillingAddress.user_id == user_id).one_or_none()


def upsert_billing_address(
    db: Session, user_id: UUID, payload: schemas.BillingAddressIn
) -> models.BillingAddress:
    values = payload.model_dump(include=set(ADDRESS_FIELDS))
    if any(not (values.get(name) or "").strip() for name in ADDRESS_FIELDS):
        raise ValidationError("All fields are required")
    address = get_billing_address(db, user_id)
    if address is None:
        address = models.BillingAddress(user_id=user_id, **values)
    else:
        for name, value in values.items():
            setattr(address, name, value)
    db.add(address)
    db.flush()
    return address
