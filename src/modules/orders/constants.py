"""Order domain constants.

Closed enums for every status-like field and the adjacency tables that
drive the order and payment state machines.  Services consult these tables;
no handler compares raw status strings.
"""

from django.db import models

from modules.core.actors import Role


class OrderStatus(models.TextChoices):
    PLACED = "placed", "Placed"
    CONFIRMED = "confirmed", "Confirmed"
    ACCEPTED = "accepted", "Accepted"
    PREPARING = "preparing", "Preparing"
    READY = "ready", "Ready"
    READY_FOR_PICKUP = "ready_for_pickup", "Ready for pickup"
    PICKED_UP = "picked_up", "Picked up"
    OUT_FOR_DELIVERY = "out_for_delivery", "Out for delivery"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"


class OrderType(models.TextChoices):
    DELIVERY = "delivery", "Delivery"
    PICKUP = "pickup", "Pickup"
    DINE_IN = "dine_in", "Dine-in"


class PaymentMethod(models.TextChoices):
    COD = "cod", "Cash on delivery"
    ONLINE = "online", "Online"
    UPI = "upi", "UPI"
    CARD = "card", "Card"
    PICKUP_PAY = "pickup_pay", "Pay at pickup"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PENDING_VERIFICATION = "pending_verification", "Pending verification"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"
    PARTIALLY_REFUNDED = "partially_refunded", "Partially refunded"


class CancelledBy(models.TextChoices):
    CUSTOMER = "customer", "Customer"
    VENDOR = "vendor", "Vendor"
    DELIVERY = "delivery", "Delivery partner"
    ADMIN = "admin", "Admin"
    SYSTEM = "system", "System"


class RefundStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


# ---------------------------------------------------------------------------
# Order state machine
# ---------------------------------------------------------------------------

VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PLACED: {
        OrderStatus.CONFIRMED,
        OrderStatus.ACCEPTED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
    },
    OrderStatus.CONFIRMED: {
        OrderStatus.ACCEPTED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
    },
    OrderStatus.ACCEPTED: {
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
    },
    OrderStatus.PREPARING: {
        OrderStatus.READY,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
    },
    OrderStatus.READY: {
        OrderStatus.READY_FOR_PICKUP,
        OrderStatus.PICKED_UP,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
    },
    OrderStatus.READY_FOR_PICKUP: {
        OrderStatus.PICKED_UP,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
    },
    OrderStatus.PICKED_UP: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
    OrderStatus.REFUNDED: set(),
}

TERMINAL_STATES: set[str] = {
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.REFUNDED,
}

# Statuses that only make sense for one family of order types.
DELIVERY_ONLY_STATES: set[str] = {OrderStatus.OUT_FOR_DELIVERY}
COLLECTION_ONLY_STATES: set[str] = {OrderStatus.READY_FOR_PICKUP}

# Targets each role may drive (ownership is checked separately).
VENDOR_TARGETS: set[str] = {
    OrderStatus.CONFIRMED,
    OrderStatus.ACCEPTED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.CANCELLED,
    OrderStatus.REFUNDED,
}
# Customer self-collection on pickup and dine-in orders is confirmed by the vendor.
VENDOR_COLLECTION_TARGETS: set[str] = {OrderStatus.PICKED_UP, OrderStatus.DELIVERED}
PARTNER_TARGETS: set[str] = {
    OrderStatus.PICKED_UP,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
}
CUSTOMER_CANCELLABLE_FROM: set[str] = {OrderStatus.PLACED, OrderStatus.CONFIRMED}

CANCELLED_BY_ROLE: dict[str, str] = {
    Role.CUSTOMER: CancelledBy.CUSTOMER,
    Role.VENDOR: CancelledBy.VENDOR,
    Role.DELIVERY: CancelledBy.DELIVERY,
    Role.ADMIN: CancelledBy.ADMIN,
    Role.SYSTEM: CancelledBy.SYSTEM,
}

# Orders the reaper may auto-cancel and orders a partner is carrying.
STALE_CANDIDATE_STATES: set[str] = {OrderStatus.PLACED, OrderStatus.CONFIRMED}
IN_TRANSIT_STATES: set[str] = {OrderStatus.PICKED_UP, OrderStatus.OUT_FOR_DELIVERY}
# Reaching either status fires the vendor-side "order-completed" signal.
COMPLETION_SIGNAL_STATES: set[str] = {OrderStatus.PICKED_UP, OrderStatus.DELIVERED}

STATUS_TIMING_FIELDS: dict[str, str] = {
    OrderStatus.PLACED: "placed_at",
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.ACCEPTED: "accepted_at",
    OrderStatus.PREPARING: "preparing_at",
    OrderStatus.READY: "ready_at",
    OrderStatus.READY_FOR_PICKUP: "ready_at",
    OrderStatus.PICKED_UP: "picked_up_at",
    OrderStatus.OUT_FOR_DELIVERY: "out_for_delivery_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
    OrderStatus.REFUNDED: "refunded_at",
}

STATUS_MESSAGES: dict[str, str] = {
    OrderStatus.PLACED: "Order placed successfully",
    OrderStatus.CONFIRMED: "Order confirmed by vendor",
    OrderStatus.ACCEPTED: "Order accepted by vendor",
    OrderStatus.PREPARING: "Your order is being prepared",
    OrderStatus.READY: "Order is ready for pickup",
    OrderStatus.READY_FOR_PICKUP: "Your order is ready to collect",
    OrderStatus.PICKED_UP: "Order picked up by delivery partner",
    OrderStatus.OUT_FOR_DELIVERY: "Your order is out for delivery",
    OrderStatus.DELIVERED: "Order delivered successfully",
    OrderStatus.CANCELLED: "Order has been cancelled",
    OrderStatus.REFUNDED: "Order has been refunded",
}

STATUS_MESSAGES_BY_TYPE: dict[tuple[str, str], str] = {
    (OrderStatus.READY, OrderType.DELIVERY): "Order is ready and waiting for a delivery partner",
    (OrderStatus.READY, OrderType.DINE_IN): "Your order is ready to be served",
    (OrderStatus.PICKED_UP, OrderType.PICKUP): "Order collected. Enjoy your meal!",
    (OrderStatus.PICKED_UP, OrderType.DINE_IN): "Order served. Enjoy your meal!",
    (OrderStatus.PICKED_UP, OrderType.DELIVERY): "Your order has been picked up and is on the way!",
    (OrderStatus.DELIVERED, OrderType.PICKUP): "Order completed",
    (OrderStatus.DELIVERED, OrderType.DINE_IN): "Order completed",
}

DEFAULT_STATUS_MESSAGE = "Order status updated"
AUTO_CANCEL_REASON = "Auto-declined: not accepted within {minutes} minutes"

# ---------------------------------------------------------------------------
# Payment state machine
# ---------------------------------------------------------------------------

PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    PaymentStatus.PENDING: {
        PaymentStatus.PROCESSING,
        PaymentStatus.PENDING_VERIFICATION,
        PaymentStatus.COMPLETED,
        PaymentStatus.FAILED,
    },
    PaymentStatus.PROCESSING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.PENDING_VERIFICATION: {
        PaymentStatus.COMPLETED,
        PaymentStatus.FAILED,
    },
    PaymentStatus.COMPLETED: {
        PaymentStatus.REFUNDED,
        PaymentStatus.PARTIALLY_REFUNDED,
    },
    PaymentStatus.PARTIALLY_REFUNDED: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),
    PaymentStatus.REFUNDED: set(),
}

ORDER_NUMBER_PREFIX = "SE"
ORDER_NUMBER_MAX_RETRIES = 5
