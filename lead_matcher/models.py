"""Data models for professionals, leads, and match results."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Literal, Mapping, Optional, Sequence, Union

from .geo.point import GeoPoint

VENDOR = "vendor"
TRADE = "trade"
ROLES = (VENDOR, TRADE)

Role = Literal["vendor", "trade"]
MatchStatus = Literal["matched", "partial", "no_match"]
Urgency = Literal["low", "medium", "high"]

DEFAULT_SERVICE_RADIUS_MILES = 50.0
MAX_SERVICE_RADIUS_MILES = 100.0
MAX_RATING = 5.0

ACTIVE = "active"
UNMATCHED = "unmatched"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Professionals ---

@dataclass
class ProfessionalProfile:
    """Fields shared by every professional, regardless of role.

    Use :class:`VendorProfile` or :class:`TradeProfile`; the role decides which
    category field a professional carries.
    """

    role: ClassVar[str] = ""

    email: str
    name: str
    zip_code: str
    uid: str = ""
    business_name: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[GeoPoint] = None
    geohash: str = ""
    service_radius_miles: float = DEFAULT_SERVICE_RADIUS_MILES
    rating: float = 0.0
    review_count: int = 0
    verified: bool = False
    status: str = ACTIVE
    specialty: Optional[str] = None
    license_number: Optional[str] = None
    years_experience: Optional[int] = None
    created_at: Optional[datetime] = None
    last_active: Optional[datetime] = None

    def __post_init__(self) -> None:
        radius = float(self.service_radius_miles)
        if math.isnan(radius) or radius <= 0 or radius > MAX_SERVICE_RADIUS_MILES:
            raise ValueError(
                f"service_radius_miles must be in (0, {MAX_SERVICE_RADIUS_MILES:g}], got {self.service_radius_miles!r}; "
                f"the lead search radius is sized for service areas up to {MAX_SERVICE_RADIUS_MILES:g} mi"
            )
        rating = float(self.rating)
        if math.isnan(rating) or not 0.0 <= rating <= MAX_RATING:
            raise ValueError(f"rating must be in [0, {MAX_RATING:g}], got {self.rating!r}")
        self.service_radius_miles = radius
        self.rating = rating

    def display_name(self) -> str:
        return self.business_name or self.name or self.email

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["role"] = self.role
        data["categories"] = list(categories_of(self))
        if self.location is not None:
            data["location"] = {"latitude": self.location.latitude, "longitude": self.location.longitude}
        for key in ("created_at", "last_active"):
            value = data.get(key)
            if isinstance(value, datetime):
                data[key] = value.isoformat()
        return data


@dataclass
class VendorProfile(ProfessionalProfile):
    """Material supplier; matched on the products it sells."""

    role: ClassVar[str] = VENDOR

    product_categories: List[str] = field(default_factory=list)


@dataclass
class TradeProfile(ProfessionalProfile):
    """Installer or contractor; matched on the trades it performs."""

    role: ClassVar[str] = TRADE

    trade_categories: List[str] = field(default_factory=list)


AnyProfile = Union[VendorProfile, TradeProfile]


def categories_of(profile: ProfessionalProfile) -> List[str]:
    """Return the category list appropriate for the profile's role."""

    match profile:
        case VendorProfile(product_categories=categories):
            return list(categories)
        case TradeProfile(trade_categories=categories):
            return list(categories)
    raise TypeError(f"Unsupported professional profile type: {type(profile).__name__}")


def profile_class_for(role: str) -> type:
    normalized = (role or "").strip().lower()
    if normalized == VENDOR:
        return VendorProfile
    if normalized == TRADE:
        return TradeProfile
    raise ValueError(f"Unknown professional role '{role}'. Expected one of {ROLES}")


def profile_from_mapping(data: Mapping[str, Any]) -> AnyProfile:
    """Build a profile from a JSON-like mapping (camelCase or snake_case keys)."""

    role = _first(data, "role")
    profile_cls = profile_class_for(str(role or ""))

    latitude = _first(data, "latitude", "lat")
    longitude = _first(data, "longitude", "lng")
    location = data.get("location")
    if isinstance(location, GeoPoint):
        point: Optional[GeoPoint] = location
    elif isinstance(location, Mapping):
        point = GeoPoint(location["latitude"], location["longitude"])
    elif latitude not in (None, "") and longitude not in (None, ""):
        point = GeoPoint(float(latitude), float(longitude))
    else:
        point = None

    kwargs: Dict[str, Any] = {
        "email": str(_first(data, "email") or ""),
        "name": str(_first(data, "name", "full_name", "fullName") or ""),
        "zip_code": str(_first(data, "zip_code", "zipCode", "zip") or ""),
        "uid": str(_first(data, "uid", "id") or ""),
        "business_name": _first(data, "business_name", "businessName"),
        "phone": _first(data, "phone"),
        "location": point,
        "geohash": str(_first(data, "geohash") or ""),
        "service_radius_miles": float(
            _first(data, "service_radius_miles", "serviceRadius", "serviceRadiusMiles") or DEFAULT_SERVICE_RADIUS_MILES
        ),
        "rating": float(_first(data, "rating") or 0.0),
        "review_count": int(_first(data, "review_count", "reviewCount") or 0),
        "verified": _as_bool(_first(data, "verified")),
        "status": str(_first(data, "status") or ACTIVE),
        "specialty": _first(data, "specialty"),
        "license_number": _first(data, "license_number", "licenseNumber"),
        "years_experience": _optional_int(_first(data, "years_experience", "yearsExperience")),
        "created_at": _as_datetime(_first(data, "created_at", "createdAt")),
        "last_active": _as_datetime(_first(data, "last_active", "lastActive")),
    }

    if profile_cls is VendorProfile:
        kwargs["product_categories"] = _as_list(_first(data, "product_categories", "productCategories", "categories"))
    else:
        kwargs["trade_categories"] = _as_list(_first(data, "trade_categories", "tradeCategories", "categories"))
    return profile_cls(**kwargs)


# --- Leads ---

@dataclass
class LeadRequest:
    """A customer's request for materials and, optionally, an installer."""

    customer_name: str
    customer_email: str
    zip_code: str
    material_categories: List[str] = field(default_factory=list)
    customer_phone: Optional[str] = None
    customer_uid: Optional[str] = None
    project_type: Optional[str] = None
    project_details: Optional[str] = None
    message: Optional[str] = None
    budget: Optional[float] = None
    timeline: Optional[str] = None
    is_looking_for_pro: bool = False
    created_at: Optional[datetime] = None
    lead_id: Optional[str] = None
    intent_score: Optional[int] = None
    urgency: Optional[Urgency] = None

    @property
    def categories(self) -> List[str]:
        """Requested categories with blanks removed, in submission order."""

        seen: List[str] = []
        for category in self.material_categories:
            text = (category or "").strip()
            if text and text not in seen:
                seen.append(text)
        return seen

    def with_updates(self, **changes: Any) -> "LeadRequest":
        return replace(self, **changes)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LeadRequest":
        """Build a lead from a JSON-like mapping (camelCase or snake_case keys)."""

        categories = _as_list(_first(data, "material_categories", "materialCategories", "categories"))
        single = _first(data, "material_category", "materialCategory")
        if single and str(single).strip() not in categories:
            categories.insert(0, str(single).strip())

        budget = _first(data, "budget")
        return cls(
            customer_name=str(_first(data, "customer_name", "customerName", "name") or ""),
            customer_email=str(_first(data, "customer_email", "customerEmail", "email") or ""),
            zip_code=str(_first(data, "zip_code", "zipCode", "zip") or ""),
            material_categories=categories,
            customer_phone=_first(data, "customer_phone", "customerPhone", "phone"),
            customer_uid=_first(data, "customer_uid", "customerUid", "customerId"),
            project_type=_first(data, "project_type", "projectType"),
            project_details=_first(data, "project_details", "projectDetails"),
            message=_first(data, "message", "description"),
            budget=_optional_float(budget),
            timeline=_first(data, "timeline"),
            is_looking_for_pro=_as_bool(_first(data, "is_looking_for_pro", "isLookingForPro")),
            created_at=_as_datetime(_first(data, "created_at", "createdAt")),
            lead_id=_first(data, "lead_id", "leadId", "id"),
            intent_score=_optional_int(_first(data, "intent_score", "intentScore")),
            urgency=_first(data, "urgency"),
        )

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        return data

    def summary(self) -> "LeadSummary":
        return LeadSummary(
            lead_id=self.lead_id or "",
            customer_name=self.customer_name,
            zip_code=self.zip_code,
            categories=self.categories,
            project_type=self.project_type,
            intent_score=self.intent_score,
            urgency=self.urgency,
            created_at=self.created_at,
        )


# --- Match results ---

@dataclass(frozen=True)
class MatchedProfessional:
    """A professional that passed the exact filters, with its ranking inputs."""

    profile: AnyProfile
    distance_miles: float
    rank_score: float

    @property
    def uid(self) -> str:
        return self.profile.uid

    @property
    def role(self) -> str:
        return self.profile.role

    def as_dict(self) -> Dict[str, Any]:
        data = self.profile.as_dict()
        data["distance_miles"] = self.distance_miles
        data["rank_score"] = self.rank_score
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MatchedProfessional":
        return cls(
            profile=profile_from_mapping(data),
            distance_miles=float(data["distance_miles"]),
            rank_score=float(data["rank_score"]),
        )


def status_for(total_matches: int) -> MatchStatus:
    if total_matches >= 3:
        return "matched"
    if total_matches > 0:
        return "partial"
    return "no_match"


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching one lead against the professional registry."""

    lead_id: str
    matched_vendors: Sequence[MatchedProfessional] = ()
    matched_trades: Sequence[MatchedProfessional] = ()
    total_matches: int = 0
    average_distance: float = 0.0
    status: MatchStatus = "no_match"
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    @classmethod
    def build(
        cls,
        lead_id: str,
        vendors: Sequence[MatchedProfessional],
        trades: Sequence[MatchedProfessional],
        *,
        created_at: Optional[datetime] = None,
        last_updated: Optional[datetime] = None,
    ) -> "MatchResult":
        kept = list(vendors) + list(trades)
        total = len(kept)
        average = sum(match.distance_miles for match in kept) / total if total else 0.0
        return cls(
            lead_id=lead_id,
            matched_vendors=tuple(vendors),
            matched_trades=tuple(trades),
            total_matches=total,
            average_distance=average,
            status=status_for(total),
            created_at=created_at,
            last_updated=last_updated,
        )

    @classmethod
    def empty(cls, lead_id: str, *, created_at: Optional[datetime] = None) -> "MatchResult":
        return cls.build(lead_id, (), (), created_at=created_at)

    @property
    def all_matches(self) -> List[MatchedProfessional]:
        return list(self.matched_vendors) + list(self.matched_trades)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "lead_id": self.lead_id,
            "matched_vendors": [match.as_dict() for match in self.matched_vendors],
            "matched_trades": [match.as_dict() for match in self.matched_trades],
            "total_matches": self.total_matches,
            "average_distance": self.average_distance,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MatchResult":
        return cls(
            lead_id=str(data["lead_id"]),
            matched_vendors=tuple(MatchedProfessional.from_dict(item) for item in data.get("matched_vendors", ())),
            matched_trades=tuple(MatchedProfessional.from_dict(item) for item in data.get("matched_trades", ())),
            total_matches=int(data.get("total_matches", 0)),
            average_distance=float(data.get("average_distance", 0.0)),
            status=data.get("status", "no_match"),
            created_at=_as_datetime(data.get("created_at")),
            last_updated=_as_datetime(data.get("last_updated")),
        )


# --- Per-professional index ---

@dataclass(frozen=True)
class LeadSummary:
    """Denormalised lead details shown on a professional's lead list."""

    lead_id: str
    customer_name: str
    zip_code: str
    categories: Sequence[str] = ()
    project_type: Optional[str] = None
    intent_score: Optional[int] = None
    urgency: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class LeadIndexEntry:
    """One row of a professional's "my leads" list."""

    professional_id: str
    role: str
    lead: LeadSummary
    distance_miles: float


@dataclass
class LeadRecord:
    """What the store persists for a lead: the request, its match, and a status."""

    lead: LeadRequest
    match: MatchResult
    status: str

    @property
    def lead_id(self) -> str:
        return self.match.lead_id


# --- Outcome ---

DegradationReason = Literal["registry_unavailable", "store_unavailable", "timeout"]


@dataclass(frozen=True)
class Degraded:
    """Why a match was produced on a degraded path."""

    reason: DegradationReason
    component: str
    detail: str = ""


@dataclass
class MatchOutcome:
    """A :class:`MatchResult` plus any degradations observed while producing it."""

    lead: LeadRequest
    result: MatchResult
    degradations: List[Degraded] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.degradations)

    @property
    def used_fallback(self) -> bool:
        return any(item.component == "registry" for item in self.degradations)

    @property
    def persisted(self) -> bool:
        return not any(item.component == "store" for item in self.degradations)


# --- Mapping helpers ---

def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            value = data[key]
            if value is None:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            return value
    return None


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.replace(";", ",").split(",")
    else:
        parts = list(value)
    cleaned: List[str] = []
    for part in parts:
        text = str(part).strip()
        if text and text not in cleaned:
            cleaned.append(text)
    return cleaned


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return bool(value)


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = value.replace("$", "").replace(",", "").strip()
        if not value:
            return None
    return float(value)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(float(value))


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
