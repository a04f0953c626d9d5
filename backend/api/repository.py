"""
Job posting persistence.

Every method opens its own session, so one repository instance is shared
by the crawler's worker threads.
"""

from datetime import datetime
from typing import Callable, Optional
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.database import JobPosting, SessionLocal, utc_now

logger = logging.getLogger(__name__)


class JobPostingRepository:
    """Queries and writes against the job_postings table."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def exists_active_by_url(self, url: str) -> bool:
        db = self.session_factory()
        try:
            return db.query(JobPosting.id).filter(
                JobPosting.source_url == url,
                JobPosting.is_active.is_(True),
            ).first() is not None
        finally:
            db.close()

    def save(self, record) -> Optional[JobPosting]:
        """
        Insert a crawled record.

        Args:
            record: JobRecord with a detail_url

        Returns:
            The stored JobPosting (detached), or None when the URL already exists
        """
        posting = JobPosting(
            title=record.title,
            company=record.company,
            location=record.location,
            experience_level=record.experience_level,
            salary=record.salary,
            employment_type=record.employment_type,
            job_category=record.job_category,
            description=record.description,
            requirements=record.requirements,
            benefits=record.benefits,
            deadline=record.deadline,
            source_site=record.source_site,
            source_url=record.detail_url,
            is_active=record.is_active,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
        db = self.session_factory()
        try:
            db.add(posting)
            db.commit()
            db.refresh(posting)
            db.expunge(posting)
            return posting
        except IntegrityError:
            db.rollback()
            return None
        finally:
            db.close()

    def update_vector(self, posting_id: int, vector_text: str) -> bool:
        db = self.session_factory()
        try:
            updated = db.query(JobPosting).filter(JobPosting.id == posting_id).update(
                {JobPosting.embedding: vector_text}, synchronize_session=False
            )
            db.commit()
            return updated > 0
        finally:
            db.close()

    def count_active(self) -> int:
        db = self.session_factory()
        try:
            return db.query(func.count(JobPosting.id)).filter(JobPosting.is_active.is_(True)).scalar() or 0
        finally:
            db.close()

    def count_active_by_site(self, site_id: str) -> int:
        db = self.session_factory()
        try:
            return db.query(func.count(JobPosting.id)).filter(
                JobPosting.source_site == site_id,
                JobPosting.is_active.is_(True),
            ).scalar() or 0
        finally:
            db.close()

    def count_created_since(self, site_id: str, since: datetime) -> int:
        db = self.session_factory()
        try:
            return db.query(func.count(JobPosting.id)).filter(
                JobPosting.source_site == site_id,
                JobPosting.created_at >= since,
            ).scalar() or 0
        finally:
            db.close()

    def last_created_at(self, site_id: str) -> Optional[datetime]:
        db = self.session_factory()
        try:
            return db.query(func.max(JobPosting.created_at)).filter(
                JobPosting.source_site == site_id
            ).scalar()
        finally:
            db.close()

    def deactivate_expired(self, now: Optional[datetime] = None) -> int:
        """Mark active postings whose deadline has passed as inactive."""
        now = now or datetime.now()
        db = self.session_factory()
        try:
            updated = db.query(JobPosting).filter(
                JobPosting.is_active.is_(True),
                JobPosting.deadline.isnot(None),
                JobPosting.deadline < now,
            ).update({JobPosting.is_active: False, JobPosting.updated_at: utc_now()}, synchronize_session=False)
            db.commit()
            return updated
        finally:
            db.close()

    def delete_created_before(self, cutoff: datetime) -> int:
        db = self.session_factory()
        try:
            deleted = db.query(JobPosting).filter(
                JobPosting.created_at < cutoff
            ).delete(synchronize_session=False)
            db.commit()
            return deleted
        finally:
            db.close()
