# Overview: Enumerated string values stored in the database.

MEMBER_ROLES = ("OWNER", "ADMIN", "STAFF", "VIEWER")

# Roles allowed to perform day-to-day writes (orders, stock, catalog)
WRITE_ROLES = ("ADMIN", "STAFF")

PRODUCT_TYPES = ("PHYSICAL", "SERVICE")

STOCK_TRANSACTION_TYPES = (
    "PURCHASE",
    "SALE",
    "ADJUSTMENT",
    "RETURN",
    "SPOILAGE",
    "TRANSFER_IN",
    "TRANSFER_OUT",
)

ORDER_STATUSES = (
    "PENDING",
    "PROCESSING",
    "AWAITING_PAYMENT",
    "PAID",
    "SHIPPED",
    "DELIVERED",
    "COMPLETED",
    "CANCELLED",
    "REFUNDED",
)

# Only consulted when ORDER_STRICT_STATUS_TRANSITIONS is enabled.
ORDER_STATUS_TRANSITIONS = {
    "PENDING": {"PROCESSING", "AWAITING_PAYMENT", "PAID", "CANCELLED"},
    "PROCESSING": {"AWAITING_PAYMENT", "PAID", "SHIPPED", "CANCELLED"},
    "AWAITING_PAYMENT": {"PAID", "CANCELLED"},
    "PAID": {"PROCESSING", "SHIPPED", "COMPLETED", "REFUNDED", "CANCELLED"},
    "SHIPPED": {"DELIVERED", "REFUNDED"},
    "DELIVERED": {"COMPLETED", "REFUNDED"},
    "COMPLETED": {"REFUNDED"},
    "CANCELLED": set(),
    "REFUNDED": set(),
}

DELIVERY_TYPES = ("DELIVERY", "IN_STORE")

PAYMENT_METHODS = (
    "CASH",
    "CARD_ONLINE",
    "CARD_TERMINAL",
    "BANK_TRANSFER",
    "MOBILE_MONEY",
    "VOUCHER",
    "OTHER",
)

ORDER_DOCUMENT_TYPE = "ORDER"

# Delivery.status follows the order through fulfilment; other order
# statuses leave it unchanged.
DELIVERY_STATUS_FOR_ORDER_STATUS = {
    "PROCESSING": "PREPARING",
    "SHIPPED": "IN_TRANSIT",
    "DELIVERED": "DELIVERED",
    "COMPLETED": "DELIVERED",
    "CANCELLED": "CANCELLED",
}

STOCK_ADJUSTMENT_REASONS = (
    "COUNT_CORRECTION",
    "FOUND",
    "LOST",
    "STOLEN",
    "DAMAGED",
    "EXPIRED",
    "RETURN_TO_SUPPLIER",
    "OTHER",
)

# Reasons allowed to push a batch below zero (stock already physically gone)
SHRINKAGE_REASONS = ("LOST", "STOLEN", "DAMAGED", "EXPIRED", "RETURN_TO_SUPPLIER")

# Negative adjustments with these reasons are booked as SPOILAGE
SPOILAGE_REASONS = ("DAMAGED", "EXPIRED")
