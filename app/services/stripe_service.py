"""
Llamadas a Stripe. El SDK es síncrono: cada llamada corre en el threadpool
y devuelve dicts planos (to_dict) para no acoplar el resto del código al SDK.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import stripe
from fastapi.concurrency import run_in_threadpool

from app.config import settings

logger = logging.getLogger(__name__)


def _key() -> str:
    return settings.stripe_secret_key or ""


def _plain(obj: Any) -> Dict[str, Any]:
    return obj.to_dict() if hasattr(obj, "to_dict") else dict(obj)


async def create_customer(email: str, name: str, account_id: str) -> Dict[str, Any]:
    customer = await run_in_threadpool(
        stripe.Customer.create,
        email=email, name=name, metadata={"accountId": account_id}, api_key=_key(),
    )
    return _plain(customer)


async def retrieve_customer(customer_id: str) -> Dict[str, Any]:
    return _plain(await run_in_threadpool(stripe.Customer.retrieve, customer_id, api_key=_key()))


async def update_customer_metadata(customer_id: str, metadata: Dict[str, str]) -> Dict[str, Any]:
    customer = await run_in_threadpool(stripe.Customer.modify, customer_id, metadata=metadata, api_key=_key())
    return _plain(customer)


async def create_checkout_session(**params: Any) -> Dict[str, Any]:
    return _plain(await run_in_threadpool(stripe.checkout.Session.create, api_key=_key(), **params))


async def retrieve_checkout_session(session_id: str) -> Dict[str, Any]:
    session = await run_in_threadpool(
        stripe.checkout.Session.retrieve, session_id,
        expand=["subscription", "payment_intent"], api_key=_key(),
    )
    return _plain(session)


async def retrieve_subscription(subscription_id: str, expand: Optional[List[str]] = None) -> Dict[str, Any]:
    subscription = await run_in_threadpool(
        stripe.Subscription.retrieve, subscription_id, expand=expand or [], api_key=_key(),
    )
    return _plain(subscription)


async def modify_subscription(subscription_id: str, **params: Any) -> Dict[str, Any]:
    return _plain(await run_in_threadpool(stripe.Subscription.modify, subscription_id, api_key=_key(), **params))


async def cancel_subscription(subscription_id: str) -> Dict[str, Any]:
    return _plain(await run_in_threadpool(stripe.Subscription.cancel, subscription_id, api_key=_key()))


async def list_payment_intents(customer_id: str, limit: int, starting_after: Optional[str] = None) -> Dict[str, Any]:
    params: Dict[str, Any] = {"customer": customer_id, "limit": limit, "expand": ["data.latest_charge"]}
    if starting_after:
        params["starting_after"] = starting_after
    return _plain(await run_in_threadpool(stripe.PaymentIntent.list, api_key=_key(), **params))


def construct_event(payload: bytes, signature: str) -> None:
    """Valida la firma del webhook; lanza stripe.SignatureVerificationError o ValueError."""
    stripe.Webhook.construct_event(payload, signature, settings.stripe_webhook_secret or "")


# ---------- Helpers de lectura ----------

def current_period_end(subscription: Dict[str, Any]) -> Optional[int]:
    """current_period_end vive en los items en las versiones nuevas del API."""
    items = (subscription.get("items") or {}).get("data") or []
    if items and items[0].get("current_period_end"):
        return items[0]["current_period_end"]
    return subscription.get("current_period_end")


def object_id(value: Any) -> Optional[str]:
    """Campos expandibles: string o dict con id."""
    if isinstance(value, dict):
        return value.get("id")
    return value or None
