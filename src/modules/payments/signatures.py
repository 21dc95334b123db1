"""Webhook signature check, delegated to the Stripe SDK.

Stripe signs ``"<timestamp>.<raw body>"`` with the endpoint secret and sends
``Stripe-Signature: t=<timestamp>,v1=<hex hmac>``.  Signatures older than
``tolerance`` seconds are rejected as replays.
"""

from __future__ import annotations

import stripe

DEFAULT_TOLERANCE = 300


def verify_signature(
    body: bytes,
    header: str | None,
    secret: str,
    tolerance: int = DEFAULT_TOLERANCE,
) -> bool:
    """An unset secret rejects everything."""
    if not secret or not header:
        return False
    try:
        stripe.WebhookSignature.verify_header(
            body.decode("utf-8"), header, secret, tolerance
        )
    except (stripe.SignatureVerificationError, UnicodeDecodeError):
        return False
    return True
