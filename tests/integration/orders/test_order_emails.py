"""Integration tests for customer emails sent from the order lifecycle.

Covers:
  - Placing an order emails the customer a confirmation.
  - Each status change emails the customer an update.
  - A broken mail server never fails the order operation.
"""

import smtplib
from unittest.mock import patch

import pytest

from modules.orders.constants import OrderStatus

pytestmark = pytest.mark.integration


def test_placement_sends_confirmation(place_order, customer, mailoutbox):
    order = place_order()

    [email] = mailoutbox
    assert email.to == [customer.email]
    assert email.subject == f"Order Confirmed - #{order.order_number}"


def test_each_transition_sends_update(place_order, advance, customer, mailoutbox):
    order = place_order()
    mailoutbox.clear()

    advance(order, "confirmed", "preparing")

    assert [email.subject for email in mailoutbox] == [
        f"Order Update - #{order.order_number}"
    ] * 2
    assert all(email.to == [customer.email] for email in mailoutbox)


def test_mail_failure_does_not_fail_the_order(place_order, advance, mailoutbox):
    with patch(
        "modules.orders.handlers.send_mail",
        side_effect=smtplib.SMTPServerDisconnected("connection lost"),
    ):
        order = place_order()
        order = advance(order, "confirmed")

    assert order.status == OrderStatus.CONFIRMED
    assert mailoutbox == []
