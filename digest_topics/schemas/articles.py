"""
Article-side data models.

Articles arrive from the surrounding pipeline already summarized and embedded;
this package only reads their ID, embedding and coarse categorization.

Hierarchy: Article → SearchResult (neighbor hit) → SimilarityEdge (graph)
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class Article(BaseModel):
    """Input record: one embedded article of the digest batch."""
    id: str
    embedding: Optional[List[float]] = None
    tag_ids: List[str] = Field(default_factory=list)
    theme_id: Optional[str] = None
    title: str = ""

    @field_validator('id', mode='before')
    @classmethod
    def _require_id(cls, v):
        v = str(v).strip() if v is not None else ""
        if not v:
            raise ValueError("article id must be non-empty")
        return v

    @field_validator('embedding', mode='before')
    @classmethod
    def _empty_embedding_is_none(cls, v):
        if v is None:
            return None
        v = list(v)
        return v or None

    @field_validator('tag_ids', mode='before')
    @classmethod
    def _dedup_tags(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        seen = []
        for tag in v:
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @property
    def has_embedding(self) -> bool:
        """True when the embedding is non-empty, finite and not all zeros."""
        from ..tools.vectors import is_valid_embedding
        return is_valid_embedding(self.embedding)

    def shares_tag_with(self, other: "Article") -> bool:
        """Tag-aware scoping: shared tag, or both untagged."""
        if not self.tag_ids and not other.tag_ids:
            return True
        return bool(set(self.tag_ids) & set(other.tag_ids))


class SearchResult(BaseModel):
    """One neighbor returned by a VectorSearcher."""
    article_id: str
    similarity: float


class SimilarityEdge(BaseModel):
    """Undirected weighted edge of the similarity graph."""
    source: int
    target: int
    weight: float = Field(ge=0.0, le=1.0)

    class Config:
        frozen = True
