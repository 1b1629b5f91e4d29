# popcorn_dashboard/utils/db.py

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from popcorn_dashboard.config import Settings


def build_engine(database_url: str) -> Engine:
    # check_same_thread=False is only needed for SQLite. It's not needed for other databases.
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args)


engine = build_engine(Settings.from_env().database_url)


def init_db(bind: Engine = engine) -> None:
    # Importing the models registers the tables on SQLModel.metadata
    from popcorn_dashboard import models  # noqa: F401

    SQLModel.metadata.create_all(bind)


def get_session():
    # Dependency to yield a database session
    with Session(engine) as session:
        yield session
