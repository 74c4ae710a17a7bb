"""
Pydantic schemas for rent accruals.
"""

from pydantic import BaseModel, Field


class AccrualRequest(BaseModel):
    tenant_id: str = Field(min_length=1, max_length=64)
    period: str = Field(pattern=r"^\d{4}-\d{2}$")


class AccrualRunRequest(BaseModel):
    period: str = Field(pattern=r"^\d{4}-\d{2}$")


class AccrualRunSummary(BaseModel):
    """Outcome of billing every active lease for one month."""
    period: str
    created: list[str] = Field(default_factory=list)
    already_accrued: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)

    @property
    def created_count(self) -> int:
        return len(self.created)
