# salon/db.py

import logging

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session, select

from salon.config import settings
from salon.data import DEFAULT_SITE_SETTINGS
from salon.models import SiteSetting

logger = logging.getLogger(__name__)


def make_engine(url: str):
    if not url.startswith("sqlite"):
        return create_engine(url, echo=False, pool_pre_ping=True)

    kwargs = {
        "echo": False,  # set to True to see SQL
        "connect_args": {"check_same_thread": False},  # required for SQLite + FastAPI
    }
    if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
        # One shared connection, otherwise every session sees an empty database
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


# Engine = connection to the database
engine = make_engine(settings.database_url)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session


def session_factory() -> Session:
    """New session on the module engine, for sweeps running outside a request."""
    return Session(engine)


def init_db(bind=None) -> None:
    bind = bind if bind is not None else engine
    SQLModel.metadata.create_all(bind)
    seed_site_settings(bind)


def seed_site_settings(bind) -> None:
    with Session(bind) as session:
        existing = set(session.exec(select(SiteSetting.key)).all())
        missing = [key for key in DEFAULT_SITE_SETTINGS if key not in existing]
        for key in missing:
            session.add(SiteSetting(key=key, value=DEFAULT_SITE_SETTINGS[key]))
        if missing:
            session.commit()
            logger.info("db.site_settings_seeded", extra={"keys": missing})
