# popcorn_dashboard/config.py

"""
Runtime configuration.
Everything the service needs from the environment is read once here and
passed around as a Settings object, instead of os.getenv calls spread
through the code.
"""

import logging
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load the environment variables
load_dotenv()

# Project root, one level up from the package
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class FieldMap(BaseModel):
    """
    Typeform field ids that anchor the answers we can't find by position.
    If the form is edited in Typeform these ids are what needs updating.
    """
    company: str = "Oh5JQY5PZFww"
    discount_code: str = "cWlsB4bhhrqY"
    flavors: str = "ShAWyFsXRXQB"  # first of the five flavor quantity questions

    # Logic-jump refs: the customer code question and where a matching code jumps to
    code_question_ref: str = "Q3_CUSTOMER_CODE"
    code_target_ref: str = "Q5_NEXT_QUESTION"

    # Typeform "variables" (calculator outputs)
    discount_price_key: str = "discount_price"
    amount_paid_key: str = "amount_paid"


class Settings(BaseModel):
    database_url: str = f"sqlite:///{os.path.join(BASE_DIR, 'database.db')}"

    typeform_api_key: Optional[str] = None
    typeform_base_url: str = "https://api.typeform.com"
    typeform_form_id: str = "X3HYI3Te"
    typeform_page_size: int = Field(default=1000, ge=1, le=1000)

    field_map: FieldMap = Field(default_factory=FieldMap)
    strict_anchors: bool = False  # reject responses missing an anchor field

    dashboard_api_key: Optional[str] = None  # unset = open (local development)
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        field_map = FieldMap(
            company=os.getenv("TYPEFORM_COMPANY_FIELD", defaults.field_map.company),
            discount_code=os.getenv("TYPEFORM_DISCOUNT_CODE_FIELD", defaults.field_map.discount_code),
            flavors=os.getenv("TYPEFORM_FLAVOR_FIELD", defaults.field_map.flavors),
        )
        origins = os.getenv("CORS_ORIGINS")
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            typeform_api_key=os.getenv("TYPEFORM_API_KEY") or None,
            typeform_base_url=os.getenv("TYPEFORM_BASE_URL", defaults.typeform_base_url),
            typeform_form_id=os.getenv("TYPEFORM_FORM_ID", defaults.typeform_form_id),
            typeform_page_size=int(os.getenv("TYPEFORM_PAGE_SIZE", defaults.typeform_page_size)),
            field_map=field_map,
            strict_anchors=os.getenv("TYPEFORM_STRICT_ANCHORS", "false").lower() in ("1", "true", "yes"),
            dashboard_api_key=os.getenv("DASHBOARD_API_KEY") or None,
            cors_origins=[o.strip() for o in origins.split(",")] if origins else defaults.cors_origins,
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
