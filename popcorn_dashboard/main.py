# popcorn_dashboard/main.py

"""
Used by FastAPI to handle the Traffic (API endpoints)
This is the entry point for the API the React dashboard talks to.
"""

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException

# For Middleware block so browser can access the API
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session

from popcorn_dashboard import orders, pricing
from popcorn_dashboard.codes import FormCodeError, FormCodeResult, FormCodeService
from popcorn_dashboard.config import configure_logging
from popcorn_dashboard.dependencies import (
    get_form_codes,
    get_ingestor,
    get_settings,
    require_api_key,
)
from popcorn_dashboard.ingest import IngestError, IngestSummary, OrderIngestor
from popcorn_dashboard.models import (
    DiscountCodeCreate,
    DiscountCodeRead,
    DiscountCodeUpdate,
    FlavorPrices,
    FormCodeCreate,
    OrderRead,
    OrderStatus,
    OrderUpdate,
    PopcornPriceRead,
)
from popcorn_dashboard.utils.db import get_session, init_db

logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Popcorn Order Dashboard", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Every route below needs the dashboard key
api = APIRouter(prefix="/api", dependencies=[Depends(require_api_key)])


@app.get("/health")
def health_check():
    return {"status": "ok"}


# -----------------
# Orders
# -----------------

@api.get("/orders", response_model=List[OrderRead])
@api.get("/orders/all", response_model=List[OrderRead])
def list_orders(
    status: Optional[OrderStatus] = None,
    customer: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    session: Session = Depends(get_session),
):
    """
    All orders, newest submission first.
    customer matches name or email, start / end bound the submission date.
    """
    return orders.list_orders(session, status=status, customer=customer, start=start, end=end)


@api.get("/orders/summary", response_model=orders.OrderSummary)
def order_summary(session: Session = Depends(get_session)):
    """Counts per status and flavor totals for the dashboard header and graphs"""
    return orders.summarize(orders.list_orders(session))


@api.post("/orders/ingest/{form_id}", response_model=IngestSummary)
def ingest_orders(form_id: str, ingestor: OrderIngestor = Depends(get_ingestor)):
    """
    Pull new responses from Typeform and save them as orders.
    The dashboard calls this on every load; existing orders are skipped.
    """
    try:
        return ingestor.ingest(form_id)
    except IngestError as e:
        # missing API key, or Typeform failed
        raise HTTPException(status_code=500, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@api.delete("/orders")
@api.delete("/orders/all")
def delete_all_orders(session: Session = Depends(get_session)):
    deleted = orders.delete_all_orders(session)
    logger.info("Deleted %s orders", deleted)
    return {"message": "All orders deleted successfully", "deletedCount": deleted}


@api.get("/orders/{key}", response_model=OrderRead)
def get_order(key: str, session: Session = Depends(get_session)):
    """key is the order uuid, or the customer's name"""
    try:
        return orders.get_order(session, key)
    except orders.OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@api.put("/orders/{key}", response_model=OrderRead)
def update_order(key: str, body: OrderUpdate, session: Session = Depends(get_session)):
    try:
        return orders.update_order(session, key, body)
    except orders.OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


# -----------------
# Pricing
# -----------------

@api.get("/pricing/discount-codes", response_model=List[DiscountCodeRead])
def list_discount_codes(session: Session = Depends(get_session)):
    return pricing.list_discount_codes(session)


@api.get("/pricing/discount-codes/{code_id}", response_model=DiscountCodeRead)
def get_discount_code(code_id: int, session: Session = Depends(get_session)):
    try:
        return pricing.get_discount_code(session, code_id)
    except pricing.DiscountCodeNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@api.post("/pricing/discount-codes", response_model=DiscountCodeRead, status_code=201)
def create_discount_code(body: DiscountCodeCreate, session: Session = Depends(get_session)):
    try:
        return pricing.create_discount_code(session, body)
    except pricing.DuplicateCodeError as e:
        raise HTTPException(status_code=400, detail=str(e))


@api.put("/pricing/discount-codes/{code_id}", response_model=DiscountCodeRead)
def update_discount_code(code_id: int, body: DiscountCodeUpdate, session: Session = Depends(get_session)):
    try:
        return pricing.update_discount_code(session, code_id, body)
    except pricing.DiscountCodeNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except pricing.DuplicateCodeError as e:
        raise HTTPException(status_code=400, detail=str(e))


@api.delete("/pricing/discount-codes/{code_id}")
def delete_discount_code(code_id: int, session: Session = Depends(get_session)):
    try:
        pricing.delete_discount_code(session, code_id)
    except pricing.DiscountCodeNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Discount code deleted successfully"}


@api.get("/pricing/popcorn-prices", response_model=PopcornPriceRead)
def get_popcorn_prices(session: Session = Depends(get_session)):
    return pricing.get_popcorn_prices(session)


@api.put("/pricing/popcorn-prices", response_model=PopcornPriceRead)
def update_popcorn_prices(body: FlavorPrices, session: Session = Depends(get_session)):
    return pricing.update_popcorn_prices(session, body)


# -----------------
# Typeform codes
# -----------------

@api.post("/codes/add", response_model=FormCodeResult, status_code=201)
def add_code(body: FormCodeCreate, service: FormCodeService = Depends(get_form_codes)):
    """
    Store a customer code and teach the Typeform form about it.
    Nothing is stored if Typeform rejects the form update.
    """
    try:
        return service.add_code(body)
    except FormCodeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except IngestError as e:
        # missing API key, or Typeform failed
        raise HTTPException(status_code=500, detail=str(e))


app.include_router(api)


if __name__ == "__main__":
    # Standard usage is 'uvicorn popcorn_dashboard.main:app --reload' from terminal
    uvicorn.run("popcorn_dashboard.main:app", host="0.0.0.0", port=8000, reload=True)
