from sqlalchemy import create_engine, Column, Integer, String, DateTime, Boolean, Text, Index
from sqlalchemy.orm import declarative_base, sessionmaker
from datetime import datetime, timezone
from pathlib import Path


def utc_now():
    """Return current UTC time (timezone-aware). Replaces deprecated datetime.utcnow()."""
    return datetime.now(timezone.utc)

Base = declarative_base()


class JobPosting(Base):
    __tablename__ = 'job_postings'

    id = Column(Integer, primary_key=True)

    # Listing fields
    title = Column(String(1000), nullable=False)
    company = Column(String(500), nullable=False, index=True)
    location = Column(String(200))
    experience_level = Column(String(100))
    salary = Column(String(200))
    employment_type = Column(String(100))  # 정규직, 계약직, 인턴 etc.
    job_category = Column(String(100))  # 개발, 디자인, 마케팅 etc.

    # Detail page fields
    description = Column(Text)
    requirements = Column(Text)
    benefits = Column(Text)
    deadline = Column(DateTime)

    # Provenance
    source_site = Column(String(100), index=True)  # Site id, e.g. 'saramin'
    source_url = Column(String(2000), unique=True, nullable=False)  # One row per detail URL

    # Metadata
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Vector text like "[0.12,-0.03,...]", attached after the row is saved
    embedding = Column(Text)

    # Composite indexes for the status queries
    __table_args__ = (
        Index('ix_job_postings_site_active', 'source_site', 'is_active'),
        Index('ix_job_postings_site_created', 'source_site', 'created_at'),
    )


# Database setup - import settings for database URL
from api.config import settings


def _engine_kwargs(url: str) -> dict:
    # SQLite connections are handed between crawler worker threads
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 5,           # Number of connections to keep in pool
        "max_overflow": 10,       # Additional connections allowed beyond pool_size
        "pool_pre_ping": True,    # Verify connections before use (handles stale connections)
        "pool_recycle": 3600,     # Recycle connections after 1 hour
    }


engine = create_engine(settings.database_url, echo=False, **_engine_kwargs(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def init_db():
    if settings.database_url.startswith("sqlite:///"):
        # File-backed SQLite needs its directory in place
        Path(settings.database_url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
