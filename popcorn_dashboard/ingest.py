# popcorn_dashboard/ingest.py

"""
The "brain" of the dashboard: pulling orders in from Typeform.

One call to ingest() does the whole sync, synchronously:
1. Fetch the form's responses from Typeform (one page)
2. Skip responses we already stored (uuid = Typeform response id)
3. Map the rest into Orders and save them one by one
4. Report what was created and what was skipped

Stored orders are never refreshed from Typeform. Once captured, an order is
only changed through the dashboard.
"""

import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, func, select

from popcorn_dashboard.config import Settings
from popcorn_dashboard.mapper import map_response_to_order
from popcorn_dashboard.models import Order
from popcorn_dashboard.typeform import TypeformClient, TypeformError

logger = logging.getLogger(__name__)


# --- Errors ---

class IngestError(Exception):
    """Ingestion could not run at all."""


class ConfigurationError(IngestError):
    pass


class ProviderError(IngestError):
    pass


# --- Result ---

class SkipReason:
    EXISTS = "exists"
    UNMAPPABLE = "unmappable"
    PERSIST_FAILED = "persist_failed"


class _Result(BaseModel):
    # Serialized camelCase for the dashboard
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NewOrderInfo(_Result):
    uuid: str
    email: str
    name: str


class SkippedResponse(_Result):
    uuid: Optional[str]
    reason: str


class IngestSummary(_Result):
    message: str = "Orders ingested successfully"
    new_orders_count: int = 0
    skipped_count: int = 0
    total_in_database: int = 0
    total_responses: int = 0
    new_orders: List[NewOrderInfo] = []
    skipped_uuids: List[Optional[str]] = []
    skipped: List[SkippedResponse] = []

    def add_skip(self, uuid: Optional[str], reason: str) -> None:
        self.skipped.append(SkippedResponse(uuid=uuid, reason=reason))
        self.skipped_uuids.append(uuid)
        self.skipped_count += 1


class OrderIngestor:
    """
    Syncs the order table with a Typeform form.
    Settings are passed in, nothing here reads the environment.
    """

    def __init__(
        self,
        session: Session,
        settings: Settings,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.session = session
        self.settings = settings
        self.transport = transport  # tests swap in httpx.MockTransport

    def ingest(self, form_id: str) -> IngestSummary:
        if not self.settings.typeform_api_key:
            raise ConfigurationError("TYPEFORM_API_KEY environment variable is not set")
        if not form_id:
            raise ValueError("Form ID is required")

        items = self._fetch(form_id)
        summary = IngestSummary(total_responses=len(items))

        logger.info("=== INGESTING ORDERS === %s responses from form %s", len(items), form_id)
        for position, item in enumerate(items, start=1):
            self._process(item, position, len(items), summary)

        summary.total_in_database = self.count_orders()
        logger.info(
            "Ingestion complete: %s new, %s skipped, %s orders in database",
            summary.new_orders_count, summary.skipped_count, summary.total_in_database,
        )
        if summary.skipped:
            logger.info("Skipped: %s", [(s.uuid, s.reason) for s in summary.skipped])
        return summary

    def count_orders(self) -> int:
        return self.session.exec(select(func.count()).select_from(Order)).one()

    def _fetch(self, form_id: str) -> List[dict]:
        client = TypeformClient(
            api_key=self.settings.typeform_api_key,
            base_url=self.settings.typeform_base_url,
            page_size=self.settings.typeform_page_size,
            transport=self.transport,
        )
        with client:
            try:
                return client.fetch_responses(form_id)
            except TypeformError as e:
                logger.error("Fetching responses for form %s failed: %s", form_id, e)
                raise ProviderError(str(e)) from e

    def _process(self, item: dict, position: int, total: int, summary: IngestSummary) -> None:
        response_id = item.get("response_id")
        logger.info(
            "[%s/%s] Processing response %s (submitted %s, %s answers)",
            position, total, response_id, item.get("submitted_at"), len(item.get("answers") or []),
        )

        # 1. Dedup: an existing order is left exactly as it is
        if response_id:
            existing = self.session.exec(select(Order).where(Order.uuid == response_id)).first()
            if existing:
                logger.info("  Order %s already exists (%s), skipping", response_id, existing.email)
                summary.add_skip(response_id, SkipReason.EXISTS)
                return

        # 2. Map
        order_data = map_response_to_order(
            item,
            field_map=self.settings.field_map,
            strict_anchors=self.settings.strict_anchors,
        )
        if order_data is None:
            logger.warning(
                "  Failed to map response %s, skipping. Answer types: %s",
                response_id, [a.get("type") for a in item.get("answers") or []],
            )
            summary.add_skip(response_id, SkipReason.UNMAPPABLE)
            return

        # 3. Persist. A unique-key clash here means another ingestion got there first.
        order = Order(**order_data)
        try:
            self.session.add(order)
            self.session.commit()
            self.session.refresh(order)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("  Error saving order %s: %s", response_id, e)
            summary.add_skip(response_id, SkipReason.PERSIST_FAILED)
            return

        logger.info("  Saved order %s - %s", order.uuid, order.email)
        summary.new_orders.append(NewOrderInfo(uuid=order.uuid, email=order.email, name=order.name))
        summary.new_orders_count += 1
