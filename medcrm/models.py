from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from medcrm.errors import ValidationError

logger = logging.getLogger(__name__)

NEVER = "Never"

# labels found in rows written by the older Chinese-language client
ROW_ALIASES = {
    "北區": "North", "中區": "Central", "南區": "South", "東區": "East",
    "醫學中心": "Medical Center", "區域醫院": "Regional", "地區醫院": "Local Community",
    "潛在客戶": "Lead", "資格審查": "Qualification", "試用": "Trial", "協商": "Negotiation",
    "成交": "Closed Won", "流失": "Closed Lost",
    "通話": "Call", "會議": "Meeting", "拜訪": "Visit", "郵件": "Email", "筆記": "Note",
    "展示": "Demo", "教育訓練": "Training",
    "訂單": "Order", "樣品": "Sample",
    "借用": "Loan", "買斷": "Purchase", "租賃": "Lease",
}


class Region(str, Enum):
    NORTH = "North"
    CENTRAL = "Central"
    SOUTH = "South"
    EAST = "East"


class HospitalLevel(str, Enum):
    LOCAL = "Local Community"
    REGIONAL = "Regional"
    MEDICAL_CENTER = "Medical Center"


class SalesStage(str, Enum):
    LEAD = "Lead"
    QUALIFICATION = "Qualification"
    TRIAL = "Trial"
    NEGOTIATION = "Negotiation"
    CLOSED_WON = "Closed Won"
    CLOSED_LOST = "Closed Lost"


class ActivityType(str, Enum):
    CALL = "Call"
    MEETING = "Meeting"
    VISIT = "Visit"
    EMAIL = "Email"
    NOTE = "Note"
    DEMO = "Demo"
    TRAINING = "Training"
    OTHER = "Other"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class UsageType(str, Enum):
    ORDER = "Order"
    SAMPLE = "Sample"


class Ownership(str, Enum):
    LEASE = "Lease"
    PURCHASE = "Purchase"
    LOAN = "Loan"


class RoleType(str, Enum):
    SALES = "sales"
    MANAGER = "manager"
    ADMIN = "admin"


def _squash(text):
    return re.sub(r"[\s_\-]", "", str(text)).upper()


def parse_enum(enum_cls, value, field_name=None):
    """
    Accepts an enum member, its value or its name.

    Matching ignores case, spaces, underscores and hyphens, so ``"Medical Center"``,
    ``"MedicalCenter"`` and ``"MEDICAL_CENTER"`` are the same level.
    """
    if isinstance(value, enum_cls):
        return value
    if value is None:
        raise ValidationError(f"{field_name or enum_cls.__name__} is required")
    text = str(value).strip()
    key = _squash(text)
    for member in enum_cls:
        if text == member.value or key in (_squash(member.name), _squash(member.value)):
            return member
    raise ValidationError(f"Unknown {field_name or enum_cls.__name__}: {value!r}")


def row_enum(enum_cls, value, default, field_name=None):
    """Lenient parse_enum for stored rows: unknown values fall back to ``default`` with a warning."""
    if value in (None, ""):
        return default
    try:
        return parse_enum(enum_cls, ROW_ALIASES.get(value, value), field_name)
    except ValidationError:
        logger.warning("Unexpected %s %r in stored row, using %s",
                       field_name or enum_cls.__name__, value, getattr(default, "value", default))
        return default


def _optional_enum(enum_cls, value):
    if value in (None, ""):
        return None
    return row_enum(enum_cls, value, None, enum_cls.__name__)


def _value(member):
    return member.value if member is not None else None


@dataclass(frozen=True)
class Session:
    subject_id: str
    expires_at: Optional[int]
    issued_at: Optional[int] = None
    access_token: str = field(default="", repr=False)
    refresh_token: str = field(default="", repr=False)

    @classmethod
    def from_auth(cls, session):
        """Builds a Session from the object returned by ``client.auth``."""
        if session is None:
            return None
        user = getattr(session, "user", None)
        expires_at = getattr(session, "expires_at", None)
        expires_in = getattr(session, "expires_in", None)
        issued_at = None
        if expires_at is not None and expires_in is not None:
            issued_at = int(expires_at) - int(expires_in)
        return cls(
            subject_id=getattr(user, "id", "") or "",
            expires_at=int(expires_at) if expires_at is not None else None,
            issued_at=issued_at,
            access_token=getattr(session, "access_token", "") or "",
            refresh_token=getattr(session, "refresh_token", "") or "",
        )

    def seconds_left(self, now):
        if self.expires_at is None:
            return None
        return self.expires_at - now


@dataclass(frozen=True)
class Equipment:
    id: str
    hospital_id: str
    product_code: str
    quantity: int
    install_date: str
    ownership: Ownership

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Equipment":
        return cls(
            id=row["id"],
            hospital_id=row["hospital_id"],
            product_code=row["product_code"],
            quantity=int(row.get("quantity") or 0),
            install_date=row.get("install_date") or "",
            ownership=row_enum(Ownership, row.get("ownership"), Ownership.PURCHASE, "ownership"),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "hospital_id": self.hospital_id,
            "product_code": self.product_code,
            "install_date": self.install_date,
            "quantity": self.quantity,
            "ownership": self.ownership.value,
        }


@dataclass(frozen=True)
class ConsumablePrice:
    """Negotiated price of one consumable at one hospital."""

    code: str
    price: float = 0.0

    @classmethod
    def from_entry(cls, entry):
        # older rows hold bare product codes
        if isinstance(entry, str):
            return cls(code=entry)
        price = entry.get("price")
        return cls(code=entry["code"], price=float(price) if price not in (None, "") else 0.0)

    def to_entry(self):
        return {"code": self.code, "price": self.price}


@dataclass(frozen=True)
class Hospital:
    id: str
    name: str
    region: Region
    level: HospitalLevel
    stage: SalesStage
    address: str = ""
    last_visit: str = NEVER
    installed_equipment: Tuple[Equipment, ...] = ()
    charge_per_use: Optional[float] = None
    remarks: str = ""
    consumables: Tuple[ConsumablePrice, ...] = ()

    @property
    def equipment_installed(self) -> bool:
        return len(self.installed_equipment) > 0

    @classmethod
    def from_row(cls, row, equipment=()):
        charge = row.get("charge_per_use")
        return cls(
            id=row["id"],
            name=row["name"],
            address=row.get("address") or "",
            region=row_enum(Region, row.get("region"), Region.NORTH, "region"),
            level=row_enum(HospitalLevel, row.get("level"), HospitalLevel.LOCAL, "level"),
            stage=row_enum(SalesStage, row.get("stage"), SalesStage.LEAD, "stage"),
            last_visit=row.get("last_visit") or NEVER,
            installed_equipment=tuple(equipment),
            charge_per_use=float(charge) if charge not in (None, "") else None,
            remarks=row.get("notes") or "",
            consumables=tuple(ConsumablePrice.from_entry(c) for c in row.get("consumables") or ()),
        )

    def to_row(self):
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "region": self.region.value,
            "level": self.level.value,
            "stage": self.stage.value,
            "equipment_installed": self.equipment_installed,
            "last_visit": self.last_visit,
            "charge_per_use": self.charge_per_use,
            "notes": self.remarks or None,
            "consumables": [c.to_entry() for c in self.consumables] or None,
        }

    def with_equipment(self, equipment):
        return replace(self, installed_equipment=tuple(equipment))

    def price_of(self, code):
        """Positive negotiated price for ``code``, or None when no price is set."""
        for consumable in self.consumables:
            if consumable.code == code and consumable.price > 0:
                return consumable.price
        return None

    def with_price(self, code, price):
        others = [c for c in self.consumables if c.code != code]
        if price:
            others.append(ConsumablePrice(code, float(price)))
        return replace(self, consumables=tuple(others))


@dataclass(frozen=True)
class Contact:
    id: str
    hospital_id: str
    name: str
    role: str = ""
    email: str = ""
    phone: str = ""
    is_key_decision_maker: bool = False

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row["id"],
            hospital_id=row["hospital_id"],
            name=row["name"],
            role=row.get("role") or "",
            email=row.get("email") or "",
            phone=row.get("phone") or "",
            is_key_decision_maker=bool(row.get("is_key_decision_maker")),
        )

    def to_row(self):
        return {
            "id": self.id,
            "hospital_id": self.hospital_id,
            "name": self.name,
            "role": self.role,
            "email": self.email,
            "phone": self.phone,
            "is_key_decision_maker": self.is_key_decision_maker,
        }


@dataclass(frozen=True)
class Note:
    id: str
    hospital_id: str
    content: str
    date: str
    author: str
    activity_type: ActivityType = ActivityType.NOTE
    next_step: Optional[str] = None
    next_step_date: Optional[str] = None
    sentiment: Optional[Sentiment] = None
    tags: Tuple[str, ...] = ()
    related_contact_ids: Tuple[str, ...] = ()
    attendees: Optional[str] = None
    user_id: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row["id"],
            hospital_id=row["hospital_id"],
            content=row.get("content") or "",
            # rows written before activity_date existed only carry created_at
            date=row.get("activity_date") or row.get("created_at") or "",
            author=row.get("author_name") or "",
            activity_type=row_enum(ActivityType, row.get("activity_type"), ActivityType.NOTE, "activity type"),
            next_step=row.get("next_step"),
            next_step_date=row.get("next_step_date"),
            sentiment=_optional_enum(Sentiment, row.get("sentiment")),
            tags=tuple(row.get("tags") or ()),
            related_contact_ids=tuple(row.get("related_contact_ids") or ()),
            attendees=row.get("attendees"),
            user_id=row.get("user_id"),
        )

    def to_row(self):
        return {
            "id": self.id,
            "hospital_id": self.hospital_id,
            "content": self.content,
            "activity_date": self.date,
            "activity_type": self.activity_type.value,
            "author_name": self.author,
            "tags": list(self.tags) or None,
            "sentiment": _value(self.sentiment),
            "next_step": self.next_step or None,
            "next_step_date": self.next_step_date or None,
            "related_contact_ids": list(self.related_contact_ids) or None,
            "attendees": self.attendees or None,
            "user_id": self.user_id,
        }


@dataclass(frozen=True)
class UsageRecord:
    id: str
    hospital_id: str
    product_code: str
    quantity: int
    date: str
    type: UsageType = UsageType.ORDER

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row["id"],
            hospital_id=row["hospital_id"],
            product_code=row["product_code"],
            quantity=int(row.get("quantity") or 0),
            date=row.get("date") or "",
            type=row_enum(UsageType, row.get("type"), UsageType.ORDER, "usage type"),
        )

    def to_row(self):
        return {
            "id": self.id,
            "hospital_id": self.hospital_id,
            "product_code": self.product_code,
            "quantity": self.quantity,
            "date": self.date,
            "type": self.type.value,
        }


@dataclass(frozen=True)
class Profile:
    id: str
    email: str = ""
    full_name: str = ""
    role_type: RoleType = RoleType.SALES
    region: Optional[str] = None
    avatar_url: Optional[str] = None
    # job title shown in user management, e.g. "Sales Representative"
    role: str = ""

    @property
    def is_manager_or_admin(self):
        return self.role_type in (RoleType.MANAGER, RoleType.ADMIN)

    @property
    def is_admin(self):
        return self.role_type == RoleType.ADMIN

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row["id"],
            email=row.get("email") or "",
            full_name=row.get("full_name") or "",
            role_type=row_enum(RoleType, row.get("role_type"), RoleType.SALES, "role"),
            region=row.get("region"),
            avatar_url=row.get("avatar_url"),
            role=row.get("role") or "",
        )
