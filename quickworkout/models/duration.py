"""
Pydantic models for duration selection.
"""
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


ComplexityTier = Literal["minimal", "simple", "standard", "comprehensive", "advanced"]
VariableRequirementTier = Literal["core", "standard", "enhanced", "full"]

COMPLEXITY_ORDER: tuple[str, ...] = ("minimal", "simple", "standard", "comprehensive", "advanced")
VARIABLE_REQUIREMENT_ORDER: tuple[str, ...] = ("core", "standard", "enhanced", "full")


class ExerciseCount(BaseModel):
    """Expected number of exercises per phase."""

    model_config = ConfigDict(frozen=True)

    warmup: int = Field(..., ge=0)
    main: int = Field(..., ge=0)
    cooldown: int = Field(..., ge=0)
    total: int = Field(..., ge=0)


class TimeAllocation(BaseModel):
    """Share of the total duration given to each phase, in percent."""

    model_config = ConfigDict(frozen=True)

    warmupPercent: int = Field(..., ge=0, le=100)
    mainPercent: int = Field(..., ge=0, le=100)
    cooldownPercent: int = Field(..., ge=0, le=100)


class DurationConfig(BaseModel):
    """Static configuration for one canonical workout duration."""

    model_config = ConfigDict(frozen=True)

    duration: int = Field(..., gt=0, description="Duration in minutes")
    name: str
    description: str
    exerciseCount: ExerciseCount
    timeAllocation: TimeAllocation
    complexity: ComplexityTier
    variableRequirements: VariableRequirementTier


class DurationStrategyResult(BaseModel):
    """Outcome of duration selection for one request."""

    config: DurationConfig
    adjustedDuration: int = Field(..., description="Selected canonical duration in minutes")
    isExactMatch: bool
    adjustmentReason: Optional[str] = None
    recommendations: list[str] = []
    alternativeOptions: list[DurationConfig] = []


class PhaseAllocation(BaseModel):
    """Per-phase target time in seconds."""

    warmup: int
    main: int
    cooldown: int


class DurationOptimization(BaseModel):
    """Summary of how the requested duration maps onto the selected one."""

    requestedDuration: int
    actualDuration: int
    isOptimal: bool
    phaseAllocation: PhaseAllocation
    recommendations: list[str] = []
    alternativeDurations: list[int] = []
