# popcorn_dashboard/codes.py

"""
Customer codes typed into the Typeform order form.

Adding a code does two things, and both must happen or neither does:
1. Store the code
2. Append a logic jump to the form so that entering the code adds
   discount_amount to the form's discount_price calculation
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from popcorn_dashboard.config import Settings
from popcorn_dashboard.ingest import ConfigurationError, ProviderError
from popcorn_dashboard.models import (
    CamelModel,
    DiscountType,
    FormCode,
    FormCodeCreate,
    FormCodeRead,
)
from popcorn_dashboard.typeform import TypeformClient, TypeformError

logger = logging.getLogger(__name__)


class FormCodeError(ValueError):
    """The request can't become a code: missing fields, bad type, or taken."""


class FormCodeResult(CamelModel):
    code: FormCodeRead
    form: Dict[str, Any] = {}


def _missing_fields(body: FormCodeCreate) -> List[str]:
    missing = []
    if not body.code:
        missing.append("code")
    if not body.type_of_discount:
        missing.append("typeOfDiscount")
    if body.discount_amount is None:
        missing.append("discountAmount")
    return missing


def validate_form_code(body: FormCodeCreate) -> DiscountType:
    missing = _missing_fields(body)
    if missing:
        raise FormCodeError(f"Missing required fields: {', '.join(missing)}")

    try:
        discount_type = DiscountType(body.type_of_discount)
    except ValueError:
        raise FormCodeError("typeOfDiscount must be either 'Percent' or 'Dollar'") from None

    if discount_type == DiscountType.PERCENT and body.percent_off is None:
        raise FormCodeError("Missing required fields: percentOff")
    if discount_type == DiscountType.DOLLAR and body.dollars_off is None:
        raise FormCodeError("Missing required fields: dollarsOff")
    return discount_type


def build_code_jump(code: str, discount_amount: float, question_ref: str, target_ref: str) -> Dict[str, Any]:
    """Typeform logic jump: when the code question equals `code`, add to discount_price."""
    return {
        "type": "field",
        "from": {"ref": question_ref},
        "conditions": [
            {
                "op": "equal",
                "vars": [
                    {"type": "field", "ref": question_ref},
                    {"type": "constant", "value": code},
                ],
            }
        ],
        "to": {"type": "field", "ref": target_ref},
        "actions": [
            {
                "action": "calculator",
                "details": {"operation": "add", "value": discount_amount, "target": "discount_price"},
            }
        ],
    }


class FormCodeService:
    def __init__(
        self,
        session: Session,
        settings: Settings,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.session = session
        self.settings = settings
        self.transport = transport

    def add_code(self, body: FormCodeCreate) -> FormCodeResult:
        discount_type = validate_form_code(body)
        if not self.settings.typeform_api_key:
            raise ConfigurationError("TYPEFORM_API_KEY environment variable is not set")

        existing = self.session.exec(select(FormCode).where(FormCode.code == body.code)).first()
        if existing:
            raise FormCodeError(f"Code {body.code} already exists")

        record = FormCode(
            code=body.code,
            type_of_discount=discount_type,
            percent_off=body.percent_off,
            dollars_off=body.dollars_off,
            discount_amount=body.discount_amount,
        )
        try:
            self.session.add(record)
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            raise FormCodeError(f"Code {body.code} already exists") from e

        # Nothing is committed until Typeform has accepted the new jump
        try:
            form = self._push_jump(record)
        except TypeformError as e:
            self.session.rollback()
            logger.error("Adding code %s to the Typeform form failed: %s", record.code, e)
            raise ProviderError(f"Failed to update Typeform: {e}") from e

        self.session.commit()
        self.session.refresh(record)
        logger.info("Added code %s (%s, +%s)", record.code, record.type_of_discount.value, record.discount_amount)
        return FormCodeResult(code=FormCodeRead.model_validate(record), form=form)

    def _push_jump(self, record: FormCode) -> Dict[str, Any]:
        form_id = self.settings.typeform_form_id
        field_map = self.settings.field_map
        client = TypeformClient(
            api_key=self.settings.typeform_api_key,
            base_url=self.settings.typeform_base_url,
            transport=self.transport,
        )
        with client:
            form = client.fetch_form(form_id)
            jumps = list((form.get("logic") or {}).get("jumps") or [])
            jumps.append(
                build_code_jump(
                    record.code,
                    record.discount_amount,
                    field_map.code_question_ref,
                    field_map.code_target_ref,
                )
            )
            return client.update_form_logic(form_id, jumps)
