from typing import Optional, Dict, Any


class NewsPipelineError(Exception):
    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


class SourceFetchError(NewsPipelineError):
    def __init__(self, source_name: str, reason: str):
        super().__init__(
            message=f"Failed to fetch feed '{source_name}': {reason}",
            error_code="SOURCE_FETCH_FAILED",
            details={"source": source_name, "reason": reason}
        )


class FeedParseError(NewsPipelineError):
    pass


class ProviderError(NewsPipelineError):
    def __init__(self, provider: str, reason: str):
        super().__init__(
            message=f"{provider} failed: {reason}",
            error_code="PROVIDER_FAILED",
            details={"provider": provider, "reason": reason}
        )


class PersistenceConflict(NewsPipelineError):
    """Source URL or slug already stored. A normal skip, not a failure."""

    def __init__(self, source_url: str, reason: str = "already exists"):
        super().__init__(
            message=f"Article {source_url} {reason}",
            error_code="PERSISTENCE_CONFLICT",
            details={"source_url": source_url}
        )


class RetentionError(NewsPipelineError):
    pass


class StoreUnavailableError(NewsPipelineError):
    pass


class PipelineBusyError(NewsPipelineError):
    def __init__(self, lock_name: str):
        super().__init__(
            message=f"Pipeline '{lock_name}' is already running",
            error_code="PIPELINE_BUSY",
            details={"lock": lock_name}
        )
