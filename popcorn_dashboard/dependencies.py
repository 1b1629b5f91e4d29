# popcorn_dashboard/dependencies.py
"""
Used by FastAPI for dependency injection - Settings, Auth, the Ingestor & the code service
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException
from sqlmodel import Session

from popcorn_dashboard.codes import FormCodeService
from popcorn_dashboard.config import Settings
from popcorn_dashboard.ingest import OrderIngestor
from popcorn_dashboard.utils.db import get_session


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


# 1. Authentication
# Real login lives in front of this service; here every caller must present the
# dashboard key. With no key configured (local development) everything is open.
async def require_api_key(
    x_api_key: Annotated[str | None, Header()] = None,
    settings: Settings = Depends(get_settings),
) -> None:
    if not settings.dashboard_api_key:
        return
    if not x_api_key:
        raise HTTPException(status_code=401, detail="API key is missing")
    if x_api_key != settings.dashboard_api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")


# 2. Build the Ingestor
# Settings + DB session go into the object that runs the Typeform sync
def get_ingestor(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> OrderIngestor:
    return OrderIngestor(session=session, settings=settings)


# 3. Build the code service (Typeform form logic + form_codes table)
def get_form_codes(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> FormCodeService:
    return FormCodeService(session=session, settings=settings)
