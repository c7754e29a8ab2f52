# =====================================================================
# ESQUEMAS DE PAGOS (STRIPE)
# =====================================================================

from __future__ import annotations

from typing import List, Optional

from .common import CamelModel, UTCDateTime


class CheckoutSessionRequest(CamelModel):
    price_id: Optional[str] = None
    plan_type: Optional[str] = None


class CheckoutSessionOut(CamelModel):
    session_id: str
    url: Optional[str] = None


class VerifySessionRequest(CamelModel):
    session_id: Optional[str] = None


class VerifySessionOut(CamelModel):
    plan_type: str
    plan_expires: Optional[UTCDateTime] = None
    subscription_id: Optional[str] = None


class PaymentMethodOut(CamelModel):
    brand: Optional[str] = None
    last4: Optional[str] = None


class SubscriptionStatusOut(CamelModel):
    """
    Estado de la suscripción. Sin suscripción en Stripe se devuelve lo guardado.

    Attributes:
        is_active (bool): active o trialing
        cancel_at_period_end (bool): Cancelación programada
        payment_method (Optional[PaymentMethodOut]): Tarjeta por defecto
    """
    is_active: bool
    status: Optional[str] = None
    plan_type: Optional[str] = None
    current_period_end: Optional[UTCDateTime] = None
    cancel_at_period_end: bool = False
    trial_ends: Optional[UTCDateTime] = None
    payment_method: Optional[PaymentMethodOut] = None


class PaymentHistoryItem(CamelModel):
    id: str
    date: UTCDateTime
    amount: float
    currency: str
    status: str
    description: Optional[str] = None
    receipt_url: Optional[str] = None
    invoice_url: Optional[str] = None


class PaymentHistoryOut(CamelModel):
    transactions: List[PaymentHistoryItem]
    has_more: bool
