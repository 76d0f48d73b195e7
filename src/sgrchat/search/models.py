from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BM25Parameters(BaseModel):
    """Tuning constants of the relevance score."""

    model_config = ConfigDict(frozen=True)

    k1: float = Field(default=1.5, gt=0, description="Term frequency saturation")
    b: float = Field(default=0.75, ge=0, le=1, description="Length normalization strength")


class SearchHit(BaseModel):
    """A record with its relevance score."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    item: Any = Field(description="The ranked record")
    score: float = Field(description="Relevance score")
    matched_terms: int = Field(default=0, ge=0, description="Query terms found in the field")
