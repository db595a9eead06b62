"""Ordering bounded context: order lifecycle and payment reconciliation.

Handles order placement, the status state machine (CQRS), payment routing
for bank transfers and the hosted payment gateway, the verification
handshake with the gateway, and purchase eligibility for reviews.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
