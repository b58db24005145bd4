from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..auth import Identity, get_current_identity
from ..catalog import Catalog, get_catalog
from ..database import get_db
from ..services import billing

router = APIRouter(prefix="/api/billing", tags=["billing"])


def _subscription_view(subscription) -> dict:
    return {
        "tier": subscription.tier,
        "status": subscription.status,
        "currentPeriodEnd": subscription.current_period_end,
    }


@router.get("/overview", response_model=schemas.Envelope[schemas.BillingOverviewOut])
async def read_overview(
    db: Session = Depends(get_db),
    catalog: Catalog = Depends(get_catalog),
    identity: Identity = Depends(get_current_identity),
):
    overview = billing.build_overview(db, catalog, identity.id)
    db.commit()
    return {"success": True, "data": overview}


@router.get("/plans")
async def list_plans(catalog: Catalog = Depends(get_catalog)):
    return {"success": True, "data": [plan.as_dict() for plan in catalog.plans]}


@router.get("/history", response_model=schemas.Envelope[schemas.InvoiceHistoryOut])
async def invoice_history(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    invoices = billing.list_invoices(db, identity.id)
    return {"success": True, "data": {"invoices": invoices}}


@router.post("/subscription/change")
async def change_subscription(
    payload: schemas.PlanRequest,
    db: Session = Depends(get_db),
    catalog: Catalog = Depends(get_catalog),
    identity: Identity = Depends(get_current_identity),
):
    subscription = billing.change_plan(db, catalog, identity.id, payload.plan_id)
    db.commit()
    return {
        "success": True,
        "message": f"Plan changed to {subscription.tier}",
        "data": _subscription_view(subscription),
    }


@router.post("/subscription/upgrade")
async def upgrade_subscription(
    payload: schemas.PlanRequest,
    db: Session = Depends(get_db),
    catalog: Catalog = Depends(get_catalog),
    identity: Identity = Depends(get_current_identity),
):
    subscription, invoice = billing.upgrade_plan(db, catalog, identity.id, payload.plan_id)
    db.commit()
    data = _subscription_view(subscription)
    if invoice is not None:
        data["invoice"] = schemas.InvoiceOut.model_validate(invoice)
    return {"success": True, "message": f"Upgraded to {subscription.tier}", "data": data}


@router.post("/subscription/cancel")
async def cancel_subscription(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    subscription = billing.cancel_subscription(db, identity.id)
    db.commit()
    return {
        "success": True,
        "message": "Subscription canceled",
        "data": _subscription_view(subscription),
    }


@router.get("/payment-methods", response_model=schemas.Envelope[list[schemas.PaymentMethodOut]])
async def list_payment_methods(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return {"success": True, "data": billing.list_payment_methods(db, identity.id)}


@router.post(
    "/payment-methods",
    status_code=201,
    response_model=schemas.Envelope[schemas.PaymentMethodOut],
)
async def add_payment_method(
    payload: schemas.PaymentMethodCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    method = billing.add_payment_method(db, identity.id, payload)
    db.commit()
    db.refresh(method)
    return {"success": True, "data": method}


@router.delete("/payment-methods/{method_id}")
async def delete_payment_method(
    method_id: UUID,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    billing.delete_payment_method(db, identity.id, method_id)
    db.commit()
    return {"success": True, "message": "Payment method removed"}


@router.post(
    "/payment-methods/{method_id}/default",
    response_model=schemas.Envelope[schemas.PaymentMethodOut],
)
async def set_default_payment_method(
    method_id: UUID,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    method = billing.set_default_payment_method(db, identity.id, method_id)
    db.commit()
    db.refresh(method)
    return {"success": True, "data": method}


@router.get("/address")
async def read_address(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    address = billing.get_billing_address(db, identity.id)
    data = schemas.BillingAddressOut.model_validate(address) if address is not None else None
    return {"success": True, "data": data}


@router.post("/address", response_model=schemas.Envelope[schemas.BillingAddressOut])
async def save_address(
    payload: schemas.BillingAddressIn,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    address = billing.upsert_billing_address(db, identity.id, payload)
    db.commit()
    db.refresh(address)
    return {"success": True, "data": address}
