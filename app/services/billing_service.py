"""
Aplicación de planes a las cuentas y manejo de eventos del webhook de Stripe.
Cada manejador registra y se traga sus propios errores (sin reintentos).
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import stripe
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Account, utcnow
from app.services import stripe_service

logger = logging.getLogger(__name__)

LIFETIME_YEARS = 100


def lifetime_expiry(now: Optional[datetime] = None) -> datetime:
    now = now or utcnow()
    try:
        return now.replace(year=now.year + LIFETIME_YEARS)
    except ValueError:
        # 29 de febrero
        return now.replace(year=now.year + LIFETIME_YEARS, day=28)


def _from_epoch(value: Optional[int]) -> Optional[datetime]:
    return datetime.fromtimestamp(value, tz=timezone.utc) if value else None


def apply_subscription(account: Account, subscription: Dict[str, Any], customer_id: Optional[str] = None) -> None:
    account.plan_type = "sub"
    account.subscription_id = subscription["id"]
    account.plan_expires = _from_epoch(stripe_service.current_period_end(subscription))
    account.trial_ends = None
    if customer_id:
        account.stripe_customer_id = customer_id


async def apply_lifetime(account: Account, customer_id: Optional[str] = None) -> None:
    """Pago único: cancela la suscripción previa (si la hay) y fija el plan full."""
    if account.subscription_id:
        try:
            await stripe_service.cancel_subscription(account.subscription_id)
            logger.info("Previous subscription cancelled", extra={"subscription_id": account.subscription_id})
        except stripe.StripeError as exc:
            logger.error(f"Failed to cancel previous subscription: {exc}", extra={"account_id": account.id})
    account.plan_type = "full"
    account.plan_expires = lifetime_expiry()
    account.subscription_id = None
    account.trial_ends = None
    if customer_id:
        account.stripe_customer_id = customer_id


async def _account_for(db: AsyncSession, account_id: Optional[str], customer_id: Optional[str] = None) -> Optional[Account]:
    if account_id:
        account = await db.get(Account, account_id)
        if account is not None:
            return account
    if customer_id:
        return await db.scalar(select(Account).where(Account.stripe_customer_id == customer_id))
    return None


async def _ensure_customer_metadata(customer_id: Optional[str], account_id: str) -> None:
    if not customer_id:
        return
    try:
        customer = await stripe_service.retrieve_customer(customer_id)
        metadata = customer.get("metadata") or {}
        if not customer.get("deleted") and not metadata.get("accountId"):
            await stripe_service.update_customer_metadata(customer_id, {**metadata, "accountId": account_id})
    except stripe.StripeError as exc:
        logger.error(f"Failed to update customer metadata: {exc}", extra={"customer_id": customer_id})


# =====================================================================
# MANEJADORES DE EVENTOS
# =====================================================================

async def handle_checkout_completed(db: AsyncSession, session: Dict[str, Any]) -> None:
    metadata = session.get("metadata") or {}
    account_id = metadata.get("accountId")
    plan_type = metadata.get("planType")
    customer_id = stripe_service.object_id(session.get("customer"))

    if not account_id and customer_id:
        try:
            customer = await stripe_service.retrieve_customer(customer_id)
            if not customer.get("deleted"):
                account_id = (customer.get("metadata") or {}).get("accountId")
        except stripe.StripeError as exc:
            logger.error(f"Customer lookup failed: {exc}", extra={"customer_id": customer_id})

    account = await _account_for(db, account_id)
    if account is None:
        logger.error("No account for checkout session", extra={"session_id": session.get("id")})
        return

    subscription_id = stripe_service.object_id(session.get("subscription"))
    if session.get("mode") == "subscription" and subscription_id:
        subscription = await stripe_service.retrieve_subscription(subscription_id)
        sub_metadata = subscription.get("metadata") or {}
        if sub_metadata.get("accountId") != account.id:
            try:
                await stripe_service.modify_subscription(
                    subscription_id, metadata={**sub_metadata, "accountId": account.id}
                )
            except stripe.StripeError as exc:
                logger.error(f"Failed to update subscription metadata: {exc}", extra={"subscription_id": subscription_id})
        await _ensure_customer_metadata(customer_id, account.id)
        apply_subscription(account, subscription, customer_id)
    elif session.get("mode") == "payment" and plan_type == "full":
        await _ensure_customer_metadata(customer_id, account.id)
        await apply_lifetime(account, customer_id)
    else:
        return
    await db.commit()
    logger.info("Checkout completed", extra={"account_id": account.id, "plan_type": account.plan_type})


async def handle_subscription_updated(db: AsyncSession, subscription: Dict[str, Any]) -> None:
    account = await _account_for(
        db,
        (subscription.get("metadata") or {}).get("accountId"),
        stripe_service.object_id(subscription.get("customer")),
    )
    if account is None:
        logger.error("No account for subscription", extra={"subscription_id": subscription.get("id")})
        return
    apply_subscription(account, subscription)
    await db.commit()


async def handle_subscription_deleted(db: AsyncSession, subscription: Dict[str, Any]) -> None:
    account = await _account_for(
        db,
        (subscription.get("metadata") or {}).get("accountId"),
        stripe_service.object_id(subscription.get("customer")),
    )
    if account is None:
        logger.error("No account for deleted subscription", extra={"subscription_id": subscription.get("id")})
        return
    account.subscription_id = None
    await db.commit()


def invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    details = ((invoice.get("parent") or {}).get("subscription_details") or {})
    return stripe_service.object_id(details.get("subscription")) or stripe_service.object_id(invoice.get("subscription"))


async def handle_invoice_paid(db: AsyncSession, invoice: Dict[str, Any]) -> None:
    subscription_id = invoice_subscription_id(invoice)
    if not subscription_id:
        return
    subscription = await stripe_service.retrieve_subscription(subscription_id)
    account = await _account_for(
        db,
        (subscription.get("metadata") or {}).get("accountId"),
        stripe_service.object_id(subscription.get("customer")),
    )
    if account is None:
        logger.error("No account for paid invoice", extra={"subscription_id": subscription_id})
        return
    account.plan_expires = _from_epoch(stripe_service.current_period_end(subscription))
    await db.commit()


async def handle_invoice_failed(db: AsyncSession, invoice: Dict[str, Any]) -> None:
    logger.warning(
        "Invoice payment failed",
        extra={"invoice_id": invoice.get("id"), "subscription_id": invoice_subscription_id(invoice)},
    )


EVENT_HANDLERS: Dict[str, Callable] = {
    "checkout.session.completed": handle_checkout_completed,
    "customer.subscription.created": handle_subscription_updated,
    "customer.subscription.updated": handle_subscription_updated,
    "customer.subscription.deleted": handle_subscription_deleted,
    "invoice.payment_succeeded": handle_invoice_paid,
    "invoice.payment_failed": handle_invoice_failed,
}


async def dispatch_event(db: AsyncSession, event: Dict[str, Any]) -> None:
    handler = EVENT_HANDLERS.get(event.get("type", ""))
    if handler is None:
        logger.info("Unhandled webhook event", extra={"type": event.get("type")})
        return
    try:
        await handler(db, (event.get("data") or {}).get("object") or {})
    except Exception as exc:
        await db.rollback()
        logger.error(f"Webhook handler failed: {exc}", extra={"type": event.get("type")}, exc_info=True)
