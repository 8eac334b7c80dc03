from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ...core.database import Base


class Category(Base):
    """Editorial category. Managed by the admin CMS; the pipeline only reads it."""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    slug = Column(String(120), nullable=False, unique=True)
    created_at = Column(DateTime, default=func.now())

    articles = relationship("Article", back_populates="category", passive_deletes=True)

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"
