"""
CardLedger services.

In-memory lookups that sit beside the ledger.
"""

from cardledger.services.card_identity_cache import (
    CardIdentityCache,
    card_identity,
    preference_key,
)

__all__ = [
    "CardIdentityCache",
    "card_identity",
    "preference_key",
]
