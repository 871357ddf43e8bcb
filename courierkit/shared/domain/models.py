"""Wire models for the courier backend (camelCase on the wire, snake_case in Python)."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

# Keys the backend may use for a document id
ID_KEYS = frozenset({"_id", "id"})


class WireModel(BaseModel):
    """Base for backend payloads: camelCase aliases, unknown fields kept."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def _id_field(**kwargs: Any) -> Any:
    # Backend ids arrive as "_id"; "id" is accepted for hand-built payloads
    return Field(
        validation_alias=AliasChoices("_id", "id"),
        serialization_alias="_id",
        min_length=1,
        **kwargs,
    )


# ============================================================================
# Enums
# ============================================================================


class Availability(str, Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class VehicleType(str, Enum):
    TWO_WHEELER = "two-wheeler"
    THREE_WHEELER = "three-wheeler"
    CAR = "car"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out-for-delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "cash-on-delivery"
    ONLINE = "online"
    WALLET = "wallet"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# ============================================================================
# Order lifecycle
# ============================================================================

ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# (from, to) pairs this client issues; preparing/cancelled are server-driven
CLIENT_TRANSITIONS: FrozenSet[Tuple[OrderStatus, OrderStatus]] = frozenset({
    (OrderStatus.PENDING, OrderStatus.CONFIRMED),
    (OrderStatus.CONFIRMED, OrderStatus.OUT_FOR_DELIVERY),
    (OrderStatus.PREPARING, OrderStatus.OUT_FOR_DELIVERY),
    (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED),
})


def can_transition(current: OrderStatus | str, target: OrderStatus | str) -> bool:
    """Whether the lifecycle allows moving an order from ``current`` to ``target``."""
    return OrderStatus(target) in ORDER_TRANSITIONS[OrderStatus(current)]


def is_client_transition(current: OrderStatus | str, target: OrderStatus | str) -> bool:
    return (OrderStatus(current), OrderStatus(target)) in CLIENT_TRANSITIONS


# ============================================================================
# Courier
# ============================================================================


class DeliveryBoy(WireModel):
    id: str = _id_field()
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    status: AccountStatus = AccountStatus.ACTIVE
    availability: Availability = Availability.OFFLINE
    total_deliveries: int = 0
    completed_deliveries: int = 0
    rating: float = 0.0
    average_delivery_time: Optional[float] = None
    last_active: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class License(WireModel):
    number: str = ""
    expiry_date: str = ""


class Vehicle(WireModel):
    type: Optional[VehicleType] = None
    registration_number: str = ""
    model: str = ""


class DeliveryBoyProfile(DeliveryBoy):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    full_address: Optional[str] = None
    join_date: Optional[str] = None
    vehicle_type: Optional[str] = None
    vehicle_number: Optional[str] = None
    vehicle_model: Optional[str] = None
    license_number: Optional[str] = None
    license_expiry: Optional[str] = None
    bank_account: Optional[str] = None
    bank_name: Optional[str] = None
    ifsc_code: Optional[str] = None
    account_holder: Optional[str] = None
    total_earnings: Optional[float] = None
    average_rating: Optional[float] = None
    completion_rate: Optional[float] = None
    license: Optional[License] = None
    vehicle: Optional[Vehicle] = None
    is_approved: bool = False
    is_verified: bool = False


class DeliveryStats(WireModel):
    total_deliveries: int = 0
    completed_deliveries: int = 0
    rating: float = 0.0
    average_delivery_time: float = 0.0
    availability: Optional[Availability] = None
    status: Optional[AccountStatus] = None


# ============================================================================
# Requests
# ============================================================================


class LoginRequest(WireModel):
    model_config = ConfigDict(extra="forbid")

    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RegisterRequest(WireModel):
    model_config = ConfigDict(extra="forbid")

    first_name: str
    last_name: str
    email: str
    password: str
    phone: str
    license_number: str
    license_expiry_date: str
    vehicle_type: VehicleType
    vehicle_registration: str
    vehicle_model: str
    address: str
    city: str
    state: str
    zip_code: str

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class LocationRequest(WireModel):
    latitude: float
    longitude: float


# ============================================================================
# Orders
# ============================================================================


# Order payloads come from several backend versions; apart from the id every
# field may be null, unpopulated (a bare id string) or an unknown enum value.


class Product(WireModel):
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("_id", "id"), serialization_alias="_id")
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None


class OrderItem(WireModel):
    product: Union[Product, str, None] = None
    quantity: Optional[int] = None
    price_at_time: Optional[float] = None
    subtotal: Optional[float] = None


class Customer(WireModel):
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("_id", "id"), serialization_alias="_id")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class DeliveryAddress(WireModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    landmark: Optional[str] = None
    instructions: Optional[str] = None

    def one_line(self) -> str:
        region = " ".join(p for p in (self.state, self.zip_code) if p)
        return ", ".join(p for p in (self.street, self.city, region) if p)


class ContactInfo(WireModel):
    phone: Optional[str] = None
    alternate_phone: Optional[str] = None


class Pricing(WireModel):
    subtotal: Optional[float] = None
    delivery_fee: Optional[float] = None
    tax: Optional[float] = None
    discount: Optional[float] = None
    total: Optional[float] = None


class PaymentInfo(WireModel):
    method: Union[PaymentMethod, str, None] = Field(default=None, union_mode="left_to_right")
    status: Union[PaymentStatus, str, None] = Field(default=None, union_mode="left_to_right")


class DeliveryInfo(WireModel):
    # Either a courier id or the populated courier document
    assigned_to: Optional[Any] = None
    estimated_time: Optional[str] = None
    actual_delivery_time: Optional[str] = None


class Order(WireModel):
    """An order as the backend sends it.

    Only the id is required. Use ``from_payload`` for server data: it keeps
    an order whose other fields fail validation by dropping those fields.
    """

    id: str = _id_field()
    order_number: Optional[str] = None
    customer: Union[Customer, str, None] = None
    items: List[OrderItem] = Field(default_factory=list)
    delivery_address: Optional[DeliveryAddress] = None
    contact_info: Optional[ContactInfo] = None
    pricing: Optional[Pricing] = None
    status: Union[OrderStatus, str] = Field(default=OrderStatus.PENDING, union_mode="left_to_right")
    payment_info: Optional[PaymentInfo] = None
    delivery: Optional[DeliveryInfo] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("items", mode="before")
    @classmethod
    def _null_items(cls, value: Any) -> Any:
        return [] if value is None else value

    @classmethod
    def from_payload(cls, payload: Any) -> "Order":
        """Validate a server payload, dropping fields other than the id that fail.

        Raises:
            ValidationError: If the id is missing or empty, or the payload is not an object
        """
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            if not isinstance(payload, dict):
                raise
            bad_keys = {err["loc"][0] for err in e.errors() if err["loc"]}
            if bad_keys & ID_KEYS or not bad_keys & payload.keys():
                raise
            logger.warning(f"Order {payload.get('_id') or payload.get('id')}: ignoring invalid field(s) {sorted(bad_keys)}")
            return cls.model_validate({k: v for k, v in payload.items() if k not in bad_keys})

    @property
    def status_label(self) -> str:
        return self.status.value if isinstance(self.status, OrderStatus) else str(self.status)

    @property
    def contact_phone(self) -> str:
        if self.contact_info and self.contact_info.phone:
            return self.contact_info.phone
        if isinstance(self.customer, Customer) and self.customer.phone:
            return self.customer.phone
        return ""


class AuthSession(BaseModel):
    """Result of a successful login or registration."""

    user: DeliveryBoy
    token: str
