from sqlalchemy import Column, String, DateTime

from ...core.database import Base


class PipelineLock(Base):
    """One row per running pipeline. The primary key makes acquisition single-flight."""
    __tablename__ = "pipeline_locks"

    name = Column(String(100), primary_key=True)
    owner = Column(String(100), nullable=False)
    acquired_at = Column(DateTime, nullable=False)
