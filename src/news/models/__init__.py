from .article import Article, ArticleStatus, ReliabilityLabel
from .category import Category
from .pipeline_lock import PipelineLock

__all__ = ["Article", "ArticleStatus", "ReliabilityLabel", "Category", "PipelineLock"]
