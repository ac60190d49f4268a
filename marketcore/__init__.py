"""
marketcore — marketplace money and transactional workflows.

    from marketcore import money as M      # Cents, rounding, splits
    from marketcore import rates as R      # Exchange rates with fallback
    from marketcore import pricing as P    # Totals, MOQ, refunds
    from marketcore import commit as T     # Atomic workflows + effects
    from marketcore import workflows as W  # Orders, quotations, wholesale
"""

from marketcore import money
from marketcore import cache
from marketcore import rates
from marketcore import store
from marketcore import events
from marketcore import commit
from marketcore import domain
from marketcore import pricing
from marketcore import ratelimit
from marketcore import workflows
from marketcore._errors import (
    ErrorKind,
    MarketError,
    ValidationError,
    NotFoundError,
    ForbiddenError,
    UpstreamUnavailable,
    CommitFailed,
    StaleRecord,
    RateLimited,
)
from marketcore.config import Settings

__version__ = "0.1.0"

__all__ = (
    "money",
    "cache",
    "rates",
    "store",
    "events",
    "commit",
    "domain",
    "pricing",
    "ratelimit",
    "workflows",
    "ErrorKind",
    "MarketError",
    "ValidationError",
    "NotFoundError",
    "ForbiddenError",
    "UpstreamUnavailable",
    "CommitFailed",
    "StaleRecord",
    "RateLimited",
    "Settings",
)
