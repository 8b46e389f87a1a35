from __future__ import annotations

from typing import Optional

from django.conf import settings

from taxes.gstin import state_code_from_gstin


DEFAULT_SELLER_STATE_CODE = "27"


def _default_seller_code() -> str:
    return state_code_from_gstin(getattr(settings, "SELLER_STATE_CODE", "")) or DEFAULT_SELLER_STATE_CODE


def is_intrastate(buyer_gstin: str | None, seller_code: str | None = None) -> bool:
    """
    Place-of-supply test at state granularity.

    The buyer's state is the first two characters of their GSTIN. A missing or
    too-short GSTIN is treated as interstate (IGST), never as an error.
    `seller_code` may be a bare state code ("27") or a full GSTIN.
    """
    buyer_code = state_code_from_gstin(buyer_gstin)
    if not buyer_code:
        return False
    seller = state_code_from_gstin(seller_code) or _default_seller_code()
    return buyer_code == seller


def resolve_seller_state_code(company_snapshot: Optional[dict] = None) -> str:
    """
    Seller state for an invoice: the issuing company's GSTIN when the snapshot
    carries one, otherwise the configured SELLER_STATE_CODE.
    """
    gstin = (company_snapshot or {}).get("gstin")
    return state_code_from_gstin(gstin) or _default_seller_code()
