"""
Part catalogue models for Work Order Tracker

Only the slice of the catalogue that work orders update is modelled here:
current price and supplier, their history, and usage counters.
"""

from datetime import datetime
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field


@dataclass(frozen=True)
class PriceHistoryEntry:
    """A purchase price observed for a part at a point in time."""

    purchase_price: float
    supplier: str
    date: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"purchase_price": self.purchase_price, "supplier": self.supplier, "date": self.date.isoformat()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceHistoryEntry":
        date = data["date"]
        return cls(
            purchase_price=data["purchase_price"],
            supplier=data["supplier"],
            date=date if isinstance(date, datetime) else datetime.fromisoformat(date)
        )


@dataclass
class PartRecord:
    """Part catalogue entry."""

    designation: str
    id: Optional[str] = None
    reference: str = ""
    supplier: str = ""
    purchase_price: float = 0.0
    history: List[PriceHistoryEntry] = field(default_factory=list)
    replacement_frequency: int = 0
    repair_frequency: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert part to dictionary."""
        return {
            "id": self.id,
            "designation": self.designation,
            "reference": self.reference,
            "supplier": self.supplier,
            "purchase_price": self.purchase_price,
            "history": [entry.to_dict() for entry in self.history],
            "replacement_frequency": self.replacement_frequency,
            "repair_frequency": self.repair_frequency,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PartRecord":
        """Create part from dictionary."""
        data = dict(data)
        for field_name in ["created_at", "updated_at"]:
            if isinstance(data.get(field_name), str):
                data[field_name] = datetime.fromisoformat(data[field_name])
        data["history"] = [PriceHistoryEntry.from_dict(e) for e in data.get("history", [])]
        return cls(**data)
