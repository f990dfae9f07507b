"""Domain models for the BMEcat catalog builder.

Frozen dataclasses shared by the reader, mapper, group tree builder and
document assembler.
"""

from .catalog_group import CatalogGroup, StructureRow
from .error_record import ErrorRecord
from .fields import BMECAT_FIELDS, BmecatField, missing_required_fields
from .generation_result import GenerationResult, GenerationStrategy
from .header_config import BmecatFormat, HeaderConfig, PricingConfig
from .row_data import Feature, FeatureMapping, NormalizedRow

__all__ = [
    # Header / configuration models
    "BmecatFormat",
    "HeaderConfig",
    "PricingConfig",
    # Row models
    "Feature",
    "FeatureMapping",
    "NormalizedRow",
    # Group models
    "CatalogGroup",
    "StructureRow",
    # Field catalogue
    "BMECAT_FIELDS",
    "BmecatField",
    "missing_required_fields",
    # Results
    "ErrorRecord",
    "GenerationResult",
    "GenerationStrategy",
]
