from __future__ import annotations

import time

import pytest

from modules.payments.signatures import verify_signature

pytestmark = pytest.mark.unit

BODY = b'{"type": "payment_intent.succeeded"}'


def test_valid_header_verifies(sign_webhook):
    assert verify_signature(BODY, sign_webhook(BODY, "whsec_test"), "whsec_test")


def test_tampered_body_fails(sign_webhook):
    header = sign_webhook(BODY, "whsec_test")
    assert not verify_signature(BODY + b" ", header, "whsec_test")


def test_wrong_secret_fails(sign_webhook):
    assert not verify_signature(BODY, sign_webhook(BODY, "whsec_other"), "whsec_test")


def test_replayed_header_fails(sign_webhook):
    old = int(time.time()) - 3600
    assert not verify_signature(BODY, sign_webhook(BODY, "whsec_test", old), "whsec_test")


def test_tolerance_is_configurable(sign_webhook):
    old = int(time.time()) - 3600
    header = sign_webhook(BODY, "whsec_test", old)
    assert verify_signature(BODY, header, "whsec_test", tolerance=7200)


@pytest.mark.parametrize("header", [None, "", "v1=deadbeef", "not-a-stripe-header"])
def test_missing_or_malformed_header_fails(header):
    assert not verify_signature(BODY, header, "whsec_test")


def test_unset_secret_rejects_everything(sign_webhook):
    assert not verify_signature(BODY, sign_webhook(BODY, ""), "")
