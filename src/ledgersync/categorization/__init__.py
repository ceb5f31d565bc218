"""Transaction categorization utilities.

Deterministic, local categorization of transactions from their free text and
amount, driven by the catalog in ``catalog.yaml``. No network calls and no
learned model.
"""

from .catalog import CategoryCatalog, CategoryRule, get_default_catalog, load_catalog
from .engine import CategorizationEngine, ClassificationResult, normalize_text
from .merchants import extract_merchant_name

__all__ = [
    "CategorizationEngine",
    "CategoryCatalog",
    "CategoryRule",
    "ClassificationResult",
    "extract_merchant_name",
    "get_default_catalog",
    "load_catalog",
    "normalize_text",
]
