"""Data contracts for the interest calculator API."""

from typing import List, Optional, Union

from pydantic import BaseModel, Field

from tiered_interest.core.amounts import format_amount
from tiered_interest.models import CalculationResult, Duration, InterestMode, SimpleInterest, TimeUnit

AmountInput = Union[float, str]
BoundaryField = Optional[Union[float, str]]


class InterestRequest(BaseModel):
    """Inputs for a one-off calculation."""

    amount: AmountInput = Field(..., description="Principal as a number or text such as '5 Lakh'.")
    boundaries: Optional[List[BoundaryField]] = Field(
        None,
        description="Tier upper bounds in ascending order; null or 'Infinity' marks the unbounded tier. "
        "Defaults to the session schedule.",
    )
    rates: Optional[List[float]] = Field(None, description="Annual percentage rate per tier.")
    duration: Duration = Field(default_factory=lambda: Duration(value=1, unit=TimeUnit.YEAR))
    mode: InterestMode = Field(default_factory=SimpleInterest)


class SessionUpdate(BaseModel):
    amount: Optional[AmountInput] = None
    duration_value: Optional[float] = None
    duration_unit: Optional[TimeUnit] = None
    mode: Optional[InterestMode] = None


class TierScheduleUpdate(BaseModel):
    boundaries: List[BoundaryField]
    rates: List[float]


class TierEdit(BaseModel):
    threshold: BoundaryField = None
    rate: Optional[float] = None


class TierView(BaseModel):
    label: str
    lower_bound: float
    upper_bound: Optional[float]
    rate: Optional[float]


class TierScheduleView(BaseModel):
    boundaries: List[Optional[float]]
    rates: List[Optional[float]]
    tiers: List[TierView]
    errors: List[str] = []


class DisplayRow(BaseModel):
    tier_label: str
    allocated_amount: str
    rate: str
    interest: str


class DisplayAmounts(BaseModel):
    """Formatted strings for a result, ready to show."""

    principal: str
    total_interest: str
    total_amount: str
    effective_annual_rate: str
    breakdown: List[DisplayRow]

    @classmethod
    def from_result(cls, result: CalculationResult) -> "DisplayAmounts":
        return cls(
            principal=format_amount(result.principal),
            total_interest=format_amount(result.total_interest),
            total_amount=format_amount(result.total_amount),
            effective_annual_rate=f"{result.effective_annual_rate:.2f}%",
            breakdown=[
                DisplayRow(
                    tier_label=row.tier_label,
                    allocated_amount=format_amount(row.allocated_amount),
                    rate=f"{row.rate:g}%",
                    interest=format_amount(row.interest),
                )
                for row in result.breakdown
            ],
        )


class InterestResponse(BaseModel):
    result: CalculationResult
    display: DisplayAmounts
    saved: bool


class HistoryResponse(BaseModel):
    calculations: List[CalculationResult]
