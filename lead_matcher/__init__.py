"""Top-level package for the geographic lead matching engine."""

from . import models  # noqa: F401
from .errors import (  # noqa: F401
    BackendUnavailable,
    InvalidCoordinates,
    InvalidLocation,
    MatchingTimeout,
    RegistryUnavailable,
    StoreUnavailable,
)
from .fallback import FallbackMatcher  # noqa: F401
from .geo import GeoPoint, Geocoder, NotFound  # noqa: F401
from .models import (  # noqa: F401
    Degraded,
    LeadIndexEntry,
    LeadRecord,
    LeadRequest,
    MatchedProfessional,
    MatchOutcome,
    MatchResult,
    TradeProfile,
    VendorProfile,
)
from .orchestrator import MatchingEngine  # noqa: F401

__all__ = [
    "BackendUnavailable",
    "Degraded",
    "FallbackMatcher",
    "GeoPoint",
    "Geocoder",
    "InvalidCoordinates",
    "InvalidLocation",
    "LeadIndexEntry",
    "LeadRecord",
    "LeadRequest",
    "MatchOutcome",
    "MatchResult",
    "MatchedProfessional",
    "MatchingEngine",
    "MatchingTimeout",
    "NotFound",
    "RegistryUnavailable",
    "StoreUnavailable",
    "TradeProfile",
    "VendorProfile",
    "geo",
    "ingestion",
    "orchestrator",
    "registry",
    "store",
]
