"""
Query Models (for the assistant)

CRITICAL: The assistant turns a question into a StructuredQuery.
The query is executed DETERMINISTICALLY on the ledger.
The LLM only phrases the answer from the QueryResult; it never
computes figures itself and never runs code against the data.
"""

from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator


QueryTarget = Literal["expenses", "investments"]
AggregationType = Literal["sum", "count", "average", "group", "none"]
GroupBy = Literal["category", "month", "year", "type", "goal", "currency"]

_EXPENSE_GROUPS = {"category", "month", "year"}
_INVESTMENT_GROUPS = {"type", "goal", "currency", "month", "year"}


class StructuredQuery(BaseModel):
    """A declarative question over one ledger collection."""

    query_id: UUID = Field(default_factory=uuid4)
    original_question: str = Field(..., description="Original natural language question")
    created_at: datetime = Field(default_factory=datetime.utcnow)

    target: QueryTarget = "expenses"

    # Filters
    category: Optional[str] = None
    investment_type: Optional[str] = None
    goal: Optional[str] = None
    search: Optional[str] = Field(default=None, description="Substring of title/name/description")
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    include_loan_emis: bool = True

    aggregation: AggregationType = "none"
    group_by: Optional[GroupBy] = None

    limit: int = Field(default=20, ge=1, le=200)

    @model_validator(mode="after")
    def check_group_by(self) -> "StructuredQuery":
        if self.aggregation == "group" and self.group_by is None:
            raise ValueError("group aggregation needs group_by")
        if self.group_by is not None:
            allowed = _EXPENSE_GROUPS if self.target == "expenses" else _INVESTMENT_GROUPS
            if self.group_by not in allowed:
                raise ValueError(f"Cannot group {self.target} by {self.group_by}")
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self


class QueryResult(BaseModel):
    """
    Result of executing a structured query.

    This is what the LLM uses to generate a natural language response.
    """

    query_id: UUID
    executed_at: datetime = Field(default_factory=datetime.utcnow)

    success: bool
    error_message: Optional[str] = None

    data_found: bool = Field(..., description="Was any data found?")
    result_count: int = Field(ge=0, description="Number of matching records")

    results: list[dict] = Field(
        default_factory=list,
        description="Matching records (up to the query limit)"
    )
    aggregation_result: Optional[dict] = None

    query_description: str = Field(
        ...,
        description="Human-readable description of what was queried"
    )
