"""
Workflows — every state-changing marketplace operation.

    from marketcore import workflows as W

    services = W.Services.build(store, cache, publisher, rate_provider, settings)

    match await W.create_order(services, buyer_id, cart_id):
        case Ok(done):
            order = done.value
        case Error(e):
            ...
"""

from __future__ import annotations

from marketcore.workflows._services import Services, new_id, document_number
from marketcore.workflows._orders import (
    order_effects,
    create_order,
    update_fulfillment,
    issue_refund,
)
from marketcore.workflows._quotations import (
    create_quotation,
    update_quotation,
    send_quotation,
    accept_quotation,
)
from marketcore.workflows._wholesale import (
    accept_invitation,
    WholesaleItemRequest,
    terms_for,
    place_wholesale_order,
)

__all__ = (
    "Services",
    "new_id",
    "document_number",
    "order_effects",
    "create_order",
    "update_fulfillment",
    "issue_refund",
    "create_quotation",
    "update_quotation",
    "send_quotation",
    "accept_quotation",
    "accept_invitation",
    "WholesaleItemRequest",
    "terms_for",
    "place_wholesale_order",
)
