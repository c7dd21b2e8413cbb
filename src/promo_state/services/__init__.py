"""Collaborator adapters and async orchestration around the pure core."""

from promo_state.services.backfill_service import load_or_fetch_entity, load_or_fetch_many
from promo_state.services.interaction_service import InteractionService
from promo_state.services.listing_service import PromoCodeListing, load_promo_codes
from promo_state.services.remote import fetch_document, fetch_page, put_interaction

__all__ = [
    "InteractionService",
    "PromoCodeListing",
    "fetch_document",
    "fetch_page",
    "load_or_fetch_entity",
    "load_or_fetch_many",
    "load_promo_codes",
    "put_interaction",
]
