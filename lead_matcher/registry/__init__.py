"""Professional registry backends."""

from .base import ProfessionalRegistry, new_professional_id
from .memory import InMemoryProfessionalRegistry
from .sample import SAMPLE_PROFESSIONALS, located_profiles
from .sqlite import SqliteProfessionalRegistry

__all__ = [
    "InMemoryProfessionalRegistry",
    "ProfessionalRegistry",
    "SAMPLE_PROFESSIONALS",
    "SqliteProfessionalRegistry",
    "located_profiles",
    "new_professional_id",
]
