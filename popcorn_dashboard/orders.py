# popcorn_dashboard/orders.py

"""Order queries and edits used by the dashboard."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import or_
from sqlmodel import Session, col, select

from popcorn_dashboard.models import FLAVORS, Order, OrderStatus, OrderUpdate, utcnow


class OrderNotFound(LookupError):
    pass


def escape_like(text: str) -> str:
    """Make % and _ in user input match literally in a LIKE pattern."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class OrderSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_orders: int
    total_amount_paid: float
    by_status: Dict[str, int]
    flavor_totals: Dict[str, int]


def list_orders(
    session: Session,
    status: Optional[OrderStatus] = None,
    customer: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Order]:
    """Newest submissions first. Date bounds are inclusive whole days."""
    statement = select(Order)
    if status:
        statement = statement.where(Order.status == status)
    if customer:
        pattern = f"%{escape_like(customer.lower())}%"
        statement = statement.where(
            or_(
                col(Order.name).ilike(pattern, escape="\\"),
                col(Order.email).ilike(pattern, escape="\\"),
            )
        )
    if start:
        statement = statement.where(Order.submitted_at >= _day_start(start))
    if end:
        statement = statement.where(Order.submitted_at < _day_start(end + timedelta(days=1)))
    statement = statement.order_by(col(Order.submitted_at).desc())
    return list(session.exec(statement).all())


def get_order(session: Session, key: str) -> Order:
    """Look an order up by uuid / order id, falling back to the customer name."""
    order = session.exec(
        select(Order).where(or_(Order.uuid == key, Order.order_id == key))
    ).first()
    if order is None:
        order = session.exec(select(Order).where(Order.name == key)).first()
    if order is None:
        raise OrderNotFound(f"Order '{key}' not found")
    return order


def update_order(session: Session, key: str, changes: OrderUpdate) -> Order:
    order = get_order(session, key)

    data = changes.model_dump(exclude_unset=True, exclude_none=True)
    quantities = data.pop("popcorn_quantities", None)
    for field, value in data.items():
        setattr(order, field, value)
    if quantities is not None:
        # Reassign so the JSON column is flagged dirty
        order.popcorn_quantities = {flavor: int(quantities.get(flavor, 0)) for flavor in FLAVORS}

    order.updated_at = utcnow()
    session.add(order)
    session.commit()
    session.refresh(order)
    return order


def delete_all_orders(session: Session) -> int:
    orders = session.exec(select(Order)).all()
    for order in orders:
        session.delete(order)
    session.commit()
    return len(orders)


def summarize(orders: List[Order]) -> OrderSummary:
    by_status = {status.value: 0 for status in OrderStatus}
    flavor_totals = {flavor: 0 for flavor in FLAVORS}
    total_paid = 0.0

    for order in orders:
        by_status[OrderStatus(order.status).value] += 1
        total_paid += order.amount_paid or 0
        for flavor in FLAVORS:
            flavor_totals[flavor] += int((order.popcorn_quantities or {}).get(flavor, 0))

    return OrderSummary(
        total_orders=len(orders),
        total_amount_paid=round(total_paid, 2),
        by_status=by_status,
        flavor_totals=flavor_totals,
    )
