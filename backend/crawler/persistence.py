"""
Record writer: validate, persist once per URL, attach the embedding.
"""

from typing import List
import logging

from .base import JobRecord

logger = logging.getLogger(__name__)

SAVED = 'saved'
DUPLICATE = 'duplicate'
INVALID = 'invalid'


def to_vector_text(vector: List[float]) -> str:
    """
    Serialize a vector for storage.

    Examples:
        [0.1, -0.25] -> "[0.1,-0.25]"
    """
    return '[' + ','.join(repr(float(v)) for v in vector) + ']'


class RecordWriter:
    """
    Hands enriched records to the persistence and embedding collaborators.

    The existence check and the save are not locked together; the unique
    source_url constraint rejects a late duplicate and the write is reported
    as a duplicate instead of an error.
    """

    def __init__(self, repository, embedder=None):
        self.repository = repository
        self.embedder = embedder

    def write(self, record: JobRecord) -> str:
        """
        Persist one record.

        Returns:
            'saved', 'duplicate' or 'invalid'
        """
        record = record.cleaned()
        if not record.is_valid():
            logger.warning(f"Skipping posting with missing fields: {record.company} - {record.title}")
            return INVALID

        if record.detail_url and self.repository.exists_active_by_url(record.detail_url):
            logger.debug(f"Duplicate posting skipped: {record.company} - {record.title}")
            return DUPLICATE

        saved = self.repository.save(record)
        if saved is None:
            logger.debug(f"Duplicate posting skipped: {record.company} - {record.title}")
            return DUPLICATE

        self._attach_embedding(saved.id, record)
        logger.debug(f"New posting saved: {record.company} - {record.title}")
        return SAVED

    def _attach_embedding(self, posting_id: int, record: JobRecord):
        if self.embedder is None or not getattr(self.embedder, 'enabled', True):
            return
        try:
            vector = self.embedder.embed(record.embedding_text())
            self.repository.update_vector(posting_id, to_vector_text(vector))
        except Exception as e:
            logger.warning(f"Embedding failed, stored without vector: {record.company} - {record.title} ({e})")
