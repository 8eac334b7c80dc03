from typing import Optional

from sqlalchemy.orm import Session

from ..news.models.category import Category


class CategoryRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_by_name(self, name: str) -> Optional[Category]:
        return self.session.query(Category).filter(Category.name == name).first()
