"""
============================================================================
Project Exposure Desk v1.0.0
Product Mapping - Canonical Reporting Names
============================================================================

Reliability Level: L5 Core
Input Constraints: Free-text product / instrument names
Side Effects: None (pure functions)

Paper and physical data sources use different spellings for the same
product ("UCOME", "UCOME FP", "UCOME-5"). Exposure tables merge on the
canonical pricing-instrument name so that every alias lands in a
single column.

============================================================================
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


# =============================================================================
# Constants
# =============================================================================

CANONICAL_PRODUCTS: Dict[str, str] = {
    "UCOME": "Argus UCOME",
    "RME": "Argus RME",
    "FAME0": "Argus FAME0",
    "LSGO": "Platts LSGO",
    "DIESEL": "Platts Diesel",
}

ICE_GASOIL_FUTURES = "ICE GASOIL FUTURES"
EFP_INSTRUMENT = "ICE GASOIL FUTURES (EFP)"
DIFF_COUNTER_PRODUCT = CANONICAL_PRODUCTS["LSGO"]

# Reporting groups for the exposure table columns
PRICING_INSTRUMENTS: List[str] = [
    "Argus UCOME",
    "Argus RME",
    "Argus FAME0",
    "Argus HVO",
    "Platts LSGO",
    "Platts Diesel",
    ICE_GASOIL_FUTURES,
    EFP_INSTRUMENT,
]

BIODIESEL_PRODUCTS: List[str] = [
    "Argus UCOME",
    "Argus RME",
    "Argus FAME0",
    "Argus HVO",
]

RELATIONSHIP_FP = "FP"
RELATIONSHIP_DIFF = "DIFF"
RELATIONSHIP_SPREAD = "SPREAD"


# =============================================================================
# Canonicalisation
# =============================================================================

def _matches_biodiesel_code(product: str, code: str) -> bool:
    return product == code or product == f"{code} FP" or f"{code}-" in product


def map_product_to_canonical(product: Optional[str]) -> str:
    """
    Collapse a product alias to its canonical reporting name.

    Unknown names are returned unchanged.
    """
    if not product:
        return product or ""

    for code in ("UCOME", "RME", "FAME0"):
        if _matches_biodiesel_code(product, code):
            return CANONICAL_PRODUCTS[code]

    if "LSGO" in product:
        return CANONICAL_PRODUCTS["LSGO"]

    if "diesel" in product or "Diesel" in product:
        return CANONICAL_PRODUCTS["DIESEL"]

    return product


@dataclass(frozen=True)
class PaperInstrument:
    """Parsed paper shorthand such as "UCOME DIFF" or "RME-FAME0 SPREAD"."""
    base_product: str
    relationship_type: str = RELATIONSHIP_FP
    opposite_product: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "baseProduct": self.base_product,
            "oppositeProduct": self.opposite_product,
            "relationshipType": self.relationship_type,
        }


def parse_paper_instrument(instrument: Optional[str]) -> PaperInstrument:
    """
    Split a paper instrument shorthand into its legs.

    - "<product> DIFF"              -> product vs Platts LSGO
    - "<a>-<b> SPREAD" or "<a>-<b>" -> a vs b
    - "<product> FP" or "<product>" -> fixed price on product
    """
    if not instrument:
        return PaperInstrument(base_product="")

    if "DIFF" in instrument:
        base = instrument.replace(" DIFF", "")
        return PaperInstrument(
            base_product=map_product_to_canonical(base),
            relationship_type=RELATIONSHIP_DIFF,
            opposite_product=DIFF_COUNTER_PRODUCT,
        )

    if "SPREAD" in instrument or "-" in instrument:
        parts = [p.strip() for p in instrument.replace(" SPREAD", "").split("-")]
        if len(parts) >= 2:
            return PaperInstrument(
                base_product=map_product_to_canonical(parts[0]),
                relationship_type=RELATIONSHIP_SPREAD,
                opposite_product=map_product_to_canonical(parts[1]),
            )

    return PaperInstrument(base_product=map_product_to_canonical(instrument.replace(" FP", "")))


def get_product_group(product: str) -> str:
    """'biodiesel', 'pricing' or 'other' for the exposure table column groups."""
    if product in BIODIESEL_PRODUCTS:
        return "biodiesel"
    if product in PRICING_INSTRUMENTS:
        return "pricing"
    return "other"


def group_products(products: List[str]) -> Dict[str, List[str]]:
    """Bucket products by reporting group, preserving input order."""
    groups: Dict[str, List[str]] = {"biodiesel": [], "pricing": [], "other": []}
    for product in products:
        groups[get_product_group(product)].append(product)
    return groups


__all__ = [
    "CANONICAL_PRODUCTS",
    "ICE_GASOIL_FUTURES",
    "EFP_INSTRUMENT",
    "DIFF_COUNTER_PRODUCT",
    "PRICING_INSTRUMENTS",
    "BIODIESEL_PRODUCTS",
    "RELATIONSHIP_FP",
    "RELATIONSHIP_DIFF",
    "RELATIONSHIP_SPREAD",
    "PaperInstrument",
    "map_product_to_canonical",
    "parse_paper_instrument",
    "get_product_group",
    "group_products",
]
