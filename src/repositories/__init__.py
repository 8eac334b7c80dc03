from .article_repository import ArticleRepository
from .category_repository import CategoryRepository
from .pipeline_lock_repository import PipelineLockRepository

__all__ = ["ArticleRepository", "CategoryRepository", "PipelineLockRepository"]
