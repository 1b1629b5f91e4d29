# popcorn_dashboard/models.py

"""
The Contract: Define what our data looks like
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import JSON, Column, DateTime
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel

# Fixed flavor order. The Typeform flavor questions are asked in this order too.
FLAVORS = ("caramel", "respresso", "butter", "cheddar", "kettle")

DEFAULT_CODE_PRICE = 5.75


def as_utc(value: datetime) -> datetime:
    # Naive values are taken to be UTC already
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def empty_quantities() -> Dict[str, int]:
    return {flavor: 0 for flavor in FLAVORS}


def flat_prices(price: float) -> Dict[str, float]:
    return {flavor: price for flavor in FLAVORS}


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC going in and coming out.
    SQLite drops the offset on disk, so it is put back on read.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return as_utc(value) if value is not None else None

    def process_result_value(self, value, dialect):
        return as_utc(value) if value is not None else None


def utc_column(**kwargs) -> Column:
    return Column(UTCDateTime(timezone=True), nullable=False, **kwargs)


class CamelModel(SQLModel):
    # The React dashboard speaks camelCase; snake_case is still accepted on input
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- 1. Enums ---
# Status is set directly by the dashboard, there are no transition rules.
class OrderStatus(str, Enum):
    INQUIRY = "Inquiry"
    CONFIRMED = "Confirmed"
    IN_PRODUCTION = "In Production"
    READY_TO_SHIP = "Ready to Ship"
    SHIPPED = "Shipped"
    INVOICED = "Invoiced"


class DiscountType(str, Enum):
    PERCENT = "Percent"
    DOLLAR = "Dollar"


# --- 2. Database Tables ---

class Order(SQLModel, table=True):
    """
    One customer inquiry, created only by Typeform ingestion.
    uuid is the Typeform response id and the dedup key, so it is unique here
    and that constraint is the only guard against two ingestions racing.
    """
    __tablename__ = "orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    uuid: str = Field(unique=True, index=True)
    order_id: str = Field(unique=True, index=True)  # same value as uuid
    email: str
    first_name: str = ""
    last_name: str = ""
    name: str = ""
    phone_number: str = ""
    company: str = ""
    discount_code: str = ""
    discount_price: float = 0
    amount_paid: float = 0
    status: OrderStatus = Field(default=OrderStatus.INQUIRY)
    popcorn_quantities: Dict[str, int] = Field(
        default_factory=empty_quantities, sa_column=Column(JSON, nullable=False)
    )
    submitted_at: datetime = Field(sa_column=utc_column(index=True))
    created_at: datetime = Field(default_factory=utcnow, sa_column=utc_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=utc_column())


class DiscountCode(SQLModel, table=True):
    __tablename__ = "discount_codes"

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(unique=True, index=True)
    # Mean of popcorn_prices, kept for consumers that only read one price
    price: float = DEFAULT_CODE_PRICE
    popcorn_prices: Optional[Dict[str, float]] = Field(
        default=None, sa_column=Column(JSON, nullable=True)
    )
    description: str = ""
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow, sa_column=utc_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=utc_column())


class PopcornPrice(SQLModel, table=True):
    """
    Base price per flavor. Singleton by convention: the most recently
    updated row is the live one.
    """
    __tablename__ = "popcorn_prices"

    id: Optional[int] = Field(default=None, primary_key=True)
    caramel: float = 0
    respresso: float = 0
    butter: float = 0
    cheddar: float = 0
    kettle: float = 0
    updated_at: datetime = Field(default_factory=utcnow, sa_column=utc_column(index=True))


class FormCode(SQLModel, table=True):
    """
    A customer code that the Typeform order form knows about: entering it
    adds discount_amount to the form's discount_price calculation.
    """
    __tablename__ = "form_codes"

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(unique=True, index=True)
    type_of_discount: DiscountType
    percent_off: Optional[float] = None
    dollars_off: Optional[float] = None
    discount_amount: float = 0
    created_at: datetime = Field(default_factory=utcnow, sa_column=utc_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=utc_column())


# --- 3. Request Bodies ---
# Table models skip validation, so the limits live on these.

class PopcornQuantities(CamelModel):
    caramel: int = Field(default=0, ge=0)
    respresso: int = Field(default=0, ge=0)
    butter: int = Field(default=0, ge=0)
    cheddar: int = Field(default=0, ge=0)
    kettle: int = Field(default=0, ge=0)


class FlavorPrices(CamelModel):
    # Every flavor is required, a partial price list is rejected
    caramel: float = Field(ge=0)
    respresso: float = Field(ge=0)
    butter: float = Field(ge=0)
    cheddar: float = Field(ge=0)
    kettle: float = Field(ge=0)

    def mean(self) -> float:
        values = [getattr(self, flavor) for flavor in FLAVORS]
        return sum(values) / len(values)


class OrderUpdate(CamelModel):
    # uuid / order_id are deliberately absent: they never change
    email: Optional[str] = Field(default=None, min_length=1)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    name: Optional[str] = None
    phone_number: Optional[str] = None
    company: Optional[str] = None
    discount_code: Optional[str] = None
    discount_price: Optional[float] = Field(default=None, ge=0)
    amount_paid: Optional[float] = Field(default=None, ge=0)
    status: Optional[OrderStatus] = None
    popcorn_quantities: Optional[PopcornQuantities] = None


class DiscountCodeCreate(CamelModel):
    code: Optional[str] = None  # random uuid when missing
    price: Optional[float] = Field(default=None, ge=0)
    popcorn_prices: Optional[FlavorPrices] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class DiscountCodeUpdate(DiscountCodeCreate):
    # No uuid fallback on update, so an empty code is never valid
    code: Optional[str] = Field(default=None, min_length=1)


class FormCodeCreate(CamelModel):
    # Required-field checks happen in codes.py so they can report every missing name
    code: Optional[str] = None
    type_of_discount: Optional[str] = None
    percent_off: Optional[float] = Field(default=None, ge=0)
    dollars_off: Optional[float] = Field(default=None, ge=0)
    discount_amount: Optional[float] = None


# --- 4. Responses ---

class OrderRead(CamelModel):
    id: int
    uuid: str
    order_id: str
    email: str
    first_name: str
    last_name: str
    name: str
    phone_number: str
    company: str
    discount_code: str
    discount_price: float
    amount_paid: float
    status: OrderStatus
    popcorn_quantities: Dict[str, int]
    submitted_at: datetime
    created_at: datetime
    updated_at: datetime


class DiscountCodeRead(CamelModel):
    id: int
    code: str
    price: float
    popcorn_prices: Optional[Dict[str, float]] = None
    description: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PopcornPriceRead(CamelModel):
    id: int
    caramel: float
    respresso: float
    butter: float
    cheddar: float
    kettle: float
    updated_at: datetime


class FormCodeRead(CamelModel):
    id: int
    code: str
    type_of_discount: DiscountType
    percent_off: Optional[float] = None
    dollars_off: Optional[float] = None
    discount_amount: float
    created_at: datetime
    updated_at: datetime
