"""
Delete every order and pull them all in again from Typeform.
Useful after changing the field mapping.

Usage: python scripts/reingest_orders.py [FORM_ID]
"""

import logging
import os
import sys

# --- PATH FIX ---
# Get the path to the project root (one level up from 'scripts')
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.append(project_root)

from sqlmodel import Session

from popcorn_dashboard.config import Settings, configure_logging
from popcorn_dashboard.ingest import IngestError, OrderIngestor
from popcorn_dashboard.orders import delete_all_orders
from popcorn_dashboard.utils.db import engine, init_db

logger = logging.getLogger("reingest_orders")


def main(form_id: str, settings: Settings) -> int:
    init_db()
    with Session(engine) as session:
        logger.info("Step 1: Deleting all orders from database...")
        deleted = delete_all_orders(session)
        logger.info("Deleted %s orders", deleted)

        logger.info("Step 2: Ingesting orders from form %s...", form_id)
        try:
            summary = OrderIngestor(session=session, settings=settings).ingest(form_id)
        except IngestError as e:
            logger.error("Ingestion failed: %s", e)
            return 1

    print(summary.model_dump_json(indent=2, by_alias=True))
    return 0


if __name__ == "__main__":
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    if not settings.typeform_api_key:
        print("❌ Error: TYPEFORM_API_KEY not found in .env file!")
        sys.exit(1)

    form_id = sys.argv[1] if len(sys.argv) > 1 else settings.typeform_form_id
    sys.exit(main(form_id, settings))
