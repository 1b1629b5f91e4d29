# popcorn_dashboard/pricing.py

"""
Discount codes and the base popcorn prices.

A discount code carries a price per flavor. Its single `price` is always the
mean of the five, so anything that only knows about one price still works.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from popcorn_dashboard.models import (
    DEFAULT_CODE_PRICE,
    DiscountCode,
    DiscountCodeCreate,
    DiscountCodeUpdate,
    FlavorPrices,
    PopcornPrice,
    flat_prices,
    utcnow,
)

logger = logging.getLogger(__name__)


class PricingError(Exception):
    pass


class DuplicateCodeError(PricingError):
    pass


class DiscountCodeNotFound(LookupError):
    pass


# --- Discount codes ---

def _ensure_code_free(session: Session, code: str, exclude_id: Optional[int] = None) -> None:
    existing = session.exec(select(DiscountCode).where(DiscountCode.code == code)).first()
    if existing and existing.id != exclude_id:
        raise DuplicateCodeError(f'Discount code "{code}" already exists')


def _apply_prices(record: DiscountCode, prices: Optional[FlavorPrices], price: Optional[float]) -> None:
    # Per-flavor prices win over a single price
    if prices is not None:
        record.popcorn_prices = prices.model_dump()
        record.price = prices.mean()
    elif price is not None:
        record.price = price
        record.popcorn_prices = flat_prices(price)


def _save(session: Session, record: DiscountCode) -> DiscountCode:
    try:
        session.add(record)
        session.commit()
    except IntegrityError as e:
        # Someone else took the code between the check and the insert
        session.rollback()
        raise DuplicateCodeError(f'Discount code "{record.code}" already exists') from e
    session.refresh(record)
    return record


def list_discount_codes(session: Session) -> List[DiscountCode]:
    statement = select(DiscountCode).order_by(col(DiscountCode.created_at).desc(), col(DiscountCode.id).desc())
    return list(session.exec(statement).all())


def get_discount_code(session: Session, code_id: int) -> DiscountCode:
    record = session.get(DiscountCode, code_id)
    if record is None:
        raise DiscountCodeNotFound(f'Discount code with ID "{code_id}" not found')
    return record


def create_discount_code(session: Session, body: DiscountCodeCreate) -> DiscountCode:
    code = body.code or str(uuid.uuid4())
    _ensure_code_free(session, code)

    record = DiscountCode(
        code=code,
        price=DEFAULT_CODE_PRICE,
        popcorn_prices=flat_prices(DEFAULT_CODE_PRICE),
        description=body.description or "",
        is_active=body.is_active if body.is_active is not None else True,
    )
    _apply_prices(record, body.popcorn_prices, body.price)
    record = _save(session, record)
    logger.info("Created discount code %s (price %.2f)", record.code, record.price)
    return record


def update_discount_code(session: Session, code_id: int, body: DiscountCodeUpdate) -> DiscountCode:
    record = get_discount_code(session, code_id)

    if body.code is not None and body.code != record.code:
        _ensure_code_free(session, body.code, exclude_id=record.id)
        record.code = body.code

    _apply_prices(record, body.popcorn_prices, body.price)
    if body.description is not None:
        record.description = body.description
    if body.is_active is not None:
        record.is_active = body.is_active

    record.updated_at = utcnow()
    return _save(session, record)


def delete_discount_code(session: Session, code_id: int) -> None:
    record = get_discount_code(session, code_id)
    session.delete(record)
    session.commit()
    logger.info("Deleted discount code %s", record.code)


# --- Base popcorn prices ---

def _latest_prices(session: Session) -> Optional[PopcornPrice]:
    statement = select(PopcornPrice).order_by(col(PopcornPrice.updated_at).desc(), col(PopcornPrice.id).desc())
    return session.exec(statement).first()


def get_popcorn_prices(session: Session) -> PopcornPrice:
    prices = _latest_prices(session)
    if prices is None:
        # First read creates the config with every flavor at 0
        prices = PopcornPrice()
        session.add(prices)
        session.commit()
        session.refresh(prices)
    return prices


def update_popcorn_prices(session: Session, body: FlavorPrices) -> PopcornPrice:
    """body is validated up front, so a bad request never reaches the row."""
    prices = _latest_prices(session) or PopcornPrice()
    for flavor, value in body.model_dump().items():
        setattr(prices, flavor, value)
    prices.updated_at = utcnow()
    session.add(prices)
    session.commit()
    session.refresh(prices)
    return prices
