from .catalog import CatalogRepository
from .taxonomy import TaxonomyRepository

__all__ = [
    "CatalogRepository",
    "TaxonomyRepository",
]
