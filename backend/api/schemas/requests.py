"""
API Request Schemas

Pydantic models for API request validation.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class DiscoveryRunRequest(BaseModel):
    """Options for one discovery pass; unset fields use the configured defaults."""

    batch_size: Optional[int] = Field(default=None, gt=0, description="Products per batch")
    min_threshold: Optional[int] = Field(default=None, gt=0, description="Minimum word occurrences")
    max_patterns_per_round: Optional[int] = Field(
        default=None,
        gt=0,
        description="Maximum ranked patterns returned"
    )
    confidence_threshold: Optional[float] = Field(
        default=None,
        gt=0,
        le=1,
        description="Minimum pattern confidence"
    )
    include_fields: Optional[list[str]] = Field(default=None, description="Product fields to scan")
    pass_number: Optional[int] = Field(
        default=None,
        ge=1,
        description="Pass number to store results under (current pass if omitted)"
    )

    def options(self) -> dict[str, Any]:
        return self.model_dump(exclude={"pass_number"}, exclude_none=True)


class QuestionsRequest(BaseModel):
    """Request a Layer-2 questionnaire for a survey pattern."""

    pattern_id: Optional[str] = Field(default=None, description="Survey pattern id, e.g. '1-leather'")
    pattern: Optional[dict[str, Any]] = Field(default=None, description="Pattern payload, used when no id is given")
    include_combinations: bool = Field(
        default=True,
        description="Look up two-word combinations in product titles"
    )


class ResponsesRequest(BaseModel):
    """Answers to a Layer-2 questionnaire, keyed by question id."""

    pattern_id: str = Field(..., min_length=1, description="Pattern the answers belong to")
    responses: dict[str, Any] = Field(default={}, description="Question id -> answer")


class LearningImport(BaseModel):
    """Learned classification tables as produced by the export endpoint."""

    customClassifications: dict[str, dict[str, Any]] = Field(default={})
    classificationPatterns: dict[str, list[str]] = Field(default={})


class GroupingRequest(BaseModel):
    """Product grouping options."""

    strategy_id: Optional[str] = Field(default=None, description="Grouping strategy id or 'none'")
    custom_options: dict[str, Any] = Field(default={}, description="Overrides applied to the strategy")
    sort_column: Optional[str] = Field(
        default=None,
        pattern="^(Color|Size)$",
        description="Primary column of the flattened tables"
    )
    product: Optional[str] = Field(default=None, description="Only keep this base product")
