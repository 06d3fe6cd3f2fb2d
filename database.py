"""SQLAlchemy models and engine setup for the primary store."""

import os
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


class Presentation(Base):
    """One uploaded deck."""

    __tablename__ = "presentations"

    id = Column(String(36), primary_key=True)
    name = Column(Text, nullable=False)
    submitted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    slides = relationship("Slide", back_populates="presentation", order_by="Slide.slide_number")
    annotations = relationship("SlideAnnotation", back_populates="presentation")


class Slide(Base):
    """A rendered slide image. Written once during processing."""

    __tablename__ = "slides"
    __table_args__ = (UniqueConstraint("presentation_id", "slide_number"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    presentation_id = Column(String(36), ForeignKey("presentations.id"), nullable=False, index=True)
    slide_id = Column(String(36), nullable=False, unique=True)
    slide_number = Column(Integer, nullable=False)  # 1-based
    image = Column(Text, nullable=False)  # base64

    presentation = relationship("Presentation", back_populates="slides")


class SlideAnnotation(Base):
    """The key/value tags attached to a slide. At most one row per slide."""

    __tablename__ = "slide_annotations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    presentation_id = Column(String(36), ForeignKey("presentations.id"), nullable=False, index=True)
    slide_id = Column(String(36), ForeignKey("slides.slide_id"), nullable=False, unique=True)
    tags = Column(JSON, nullable=False)

    presentation = relationship("Presentation", back_populates="annotations")


def create_db_engine(database_url):
    """Builds an engine, creating the parent directory of a SQLite file if needed."""
    url = make_url(database_url)
    connect_args = {}
    if url.get_backend_name() == "sqlite":
        # The pipeline runs in FastAPI's threadpool.
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            directory = os.path.dirname(os.path.abspath(url.database))
            os.makedirs(directory, exist_ok=True)
    return create_engine(database_url, connect_args=connect_args)


def create_session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine):
    Base.metadata.create_all(engine)
