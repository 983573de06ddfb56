"""Core data models shared by the diagnosis and dealer handlers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class Dealer:
    """Normalized dealer record as stored in the ``dealers`` collection."""

    name: str
    longitude: float
    latitude: float
    address: str = "No Address"
    phone_number: str = "No Phone"
    rating: float = 0
    open_now: Optional[bool] = None
    stock: List[str] = field(default_factory=list)
    google_place_id: Optional[str] = None
    last_updated: Optional[datetime] = None

    def to_document(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {
            "name": self.name,
            "address": self.address,
            "phone_number": self.phone_number,
            "rating": self.rating,
            "open_now": self.open_now,
            "stock": list(self.stock),
            "location": {"type": "Point", "coordinates": [self.longitude, self.latitude]},
        }
        # Sparse unique index: omit the key rather than storing null.
        if self.google_place_id:
            document["google_place_id"] = self.google_place_id
        if self.last_updated is not None:
            document["last_updated"] = self.last_updated
        return document


@dataclass(slots=True)
class TreatmentStep:
    day: str
    title: str
    detail: str


@dataclass(slots=True)
class Diagnosis:
    """Transient diagnosis returned to the client; never persisted."""

    disease_name: str
    confidence_score: Any
    timeline: List[TreatmentStep]
    recommended_product: str = "General"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
