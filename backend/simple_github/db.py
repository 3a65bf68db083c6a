"""SQLAlchemy models and engine setup for local durable state."""

from sqlalchemy import Column, Integer, String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


class Preference(Base):
    """Key-value record, holds the OAuth token."""

    __tablename__ = "preferences"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=True)


class SearchHistoryEntry(Base):
    """A repository the user opened from search results."""

    __tablename__ = "repositories"

    full_name = Column(String(512), primary_key=True)
    name = Column(String(255), nullable=False)
    owner_login = Column(String(255), nullable=False)
    owner_avatar_url = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    language = Column(String(64), nullable=True)
    updated_at = Column(String(64), nullable=False)
    stars = Column(Integer, nullable=False)
    # higher is more recent
    position = Column(Integer, nullable=False, index=True)


def create_db_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # stores are used from worker threads
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)
