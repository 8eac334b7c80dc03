from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..news.models.pipeline_lock import PipelineLock
from ..utils.string_utils import utcnow


class PipelineLockRepository:
    def __init__(self, session: Session):
        self.session = session

    def acquire(self, name: str, owner: str, ttl_minutes: int) -> bool:
        """Insert the lock row. False when a live lock already holds ``name``."""
        now = utcnow()
        (
            self.session.query(PipelineLock)
            .filter(PipelineLock.name == name)
            .filter(PipelineLock.acquired_at < now - timedelta(minutes=ttl_minutes))
            .delete(synchronize_session=False)
        )
        self.session.commit()

        self.session.add(PipelineLock(name=name, owner=owner, acquired_at=now))
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            return False
        return True

    def release(self, name: str, owner: str) -> None:
        (
            self.session.query(PipelineLock)
            .filter(PipelineLock.name == name, PipelineLock.owner == owner)
            .delete(synchronize_session=False)
        )
        self.session.commit()
