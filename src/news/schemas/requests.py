"""News API request schemas"""

from typing import Optional

from pydantic import BaseModel, Field


class EnhanceArticleRequest(BaseModel):
    """Request model for rewriting a single article"""
    original_title: str = Field(..., min_length=1, description="Title as published by the source")
    original_summary: str = Field(..., min_length=1, description="Summary or lead paragraph from the source")
    category: str = Field(default="societe", description="Category key, e.g. politique or economie")
    source_name: str = Field(default="", description="Name of the publishing outlet")
    source_url: Optional[str] = Field(default=None, description="Link to the original article")
