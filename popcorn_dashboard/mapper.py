# popcorn_dashboard/mapper.py

"""
Turns one raw Typeform response into the fields of an Order.

The form has no stable refs on most questions, so extraction is mostly
positional:
- answers[0], answers[1] -> first / last name
- answers[2]             -> phone number
- answers[3]             -> email (or the first email-typed answer anywhere)
- company, discount code -> looked up by field id (see FieldMap)
- flavor quantities      -> the five answers starting at the flavor field id,
                            rounded to whole bags and never below 0
- discount / paid        -> the response "variables"
- submitted_at           -> timezone-aware UTC
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from popcorn_dashboard.config import FieldMap
from popcorn_dashboard.models import FLAVORS, OrderStatus, as_utc

logger = logging.getLogger(__name__)

DEFAULT_FIELD_MAP = FieldMap()

# Fallback positions in "variables" when the keys aren't present
DISCOUNT_PRICE_POSITION = 0
AMOUNT_PAID_POSITION = 1


def _answer(answers: List[Mapping[str, Any]], index: int) -> Mapping[str, Any]:
    if 0 <= index < len(answers):
        return answers[index] or {}
    return {}


def _field_id(answer: Mapping[str, Any]) -> Optional[str]:
    return (answer.get("field") or {}).get("id")


def find_field_index(answers: List[Mapping[str, Any]], field_id: str) -> int:
    """Index of the answer to the given field id, or -1."""
    for index, answer in enumerate(answers):
        if _field_id(answer) == field_id:
            return index
    return -1


def _quantity(answer: Mapping[str, Any]) -> int:
    # Number answers can carry fractions or negatives; round to the nearest whole bag, floor at 0
    try:
        return max(0, int(round(float(answer.get("number") or 0))))
    except (TypeError, ValueError):
        return 0


def _variable_number(variables: List[Any], key: str, position: int) -> float:
    keyed = [v for v in variables if isinstance(v, Mapping) and v.get("key") == key]
    if keyed:
        variable = keyed[0]
    elif 0 <= position < len(variables) and isinstance(variables[position], Mapping):
        variable = variables[position]
    else:
        return 0
    value = variable.get("number")
    if value is None:
        value = variable.get("value")
    try:
        return float(value) if value is not None else 0
    except (TypeError, ValueError):
        return 0


def _describe_answers(answers: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "index": index,
            "type": answer.get("type"),
            "field_type": (answer.get("field") or {}).get("type"),
            "field_id": _field_id(answer),
            "has_text": bool(answer.get("text")),
            "has_email": bool(answer.get("email")),
            "has_phone": bool(answer.get("phone_number")),
        }
        for index, answer in enumerate(answers)
    ]


def parse_submitted_at(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return as_utc(parsed)


def map_response_to_order(
    response: Mapping[str, Any],
    field_map: FieldMap = DEFAULT_FIELD_MAP,
    strict_anchors: bool = False,
) -> Optional[Dict[str, Any]]:
    """
    Map a Typeform response to Order fields.
    Returns None (and logs why) when the response can't become an order.
    Never raises.
    """
    response_id = response.get("response_id") if isinstance(response, Mapping) else None
    try:
        if not response_id:
            logger.warning("Skipping Typeform response without a response_id")
            return None

        answers = list(response.get("answers") or [])

        if len(answers) < 4:
            logger.warning(
                "Not enough answers for response %s. Found %s answers", response_id, len(answers)
            )
            return None

        first_name = _answer(answers, 0).get("text") or ""
        last_name = _answer(answers, 1).get("text") or ""
        phone_number = _answer(answers, 2).get("phone_number") or ""

        email = _answer(answers, 3).get("email") or ""
        if not email:
            email_answer = next((a for a in answers if a.get("type") == "email"), {})
            email = email_answer.get("email") or ""

        if not email:
            logger.error(
                "No email found for response %s. Answers: %s",
                response_id, _describe_answers(answers),
            )
            return None

        name = f"{first_name} {last_name}".strip() or email

        company_index = find_field_index(answers, field_map.company)
        discount_code_index = find_field_index(answers, field_map.discount_code)
        flavor_index = find_field_index(answers, field_map.flavors)

        if strict_anchors:
            missing = [
                role
                for role, index in (
                    ("company", company_index),
                    ("discount_code", discount_code_index),
                    ("flavors", flavor_index),
                )
                if index == -1
            ]
            if missing:
                logger.error("Response %s is missing anchor fields %s", response_id, missing)
                return None

        company = _answer(answers, company_index).get("text") or ""
        discount_code = _answer(answers, discount_code_index).get("text") or ""

        popcorn_quantities = {flavor: 0 for flavor in FLAVORS}
        if flavor_index != -1:
            for offset, flavor in enumerate(FLAVORS):
                popcorn_quantities[flavor] = _quantity(_answer(answers, flavor_index + offset))

        # TODO: confirm the amount_paid variable key with the form owner and drop the positional fallback
        variables = list(response.get("variables") or [])
        discount_price = _variable_number(variables, field_map.discount_price_key, DISCOUNT_PRICE_POSITION)
        amount_paid = _variable_number(variables, field_map.amount_paid_key, AMOUNT_PAID_POSITION)

        return {
            "uuid": response_id,
            "order_id": response_id,
            "email": email,
            "first_name": first_name,
            "last_name": last_name,
            "name": name,
            "phone_number": phone_number,
            "company": company,
            "discount_code": discount_code,
            "discount_price": discount_price,
            "amount_paid": amount_paid,
            "status": OrderStatus.INQUIRY,
            "popcorn_quantities": popcorn_quantities,
            "submitted_at": parse_submitted_at(response.get("submitted_at")),
        }
    except Exception:
        logger.exception("Error mapping Typeform response %s", response_id)
        return None
