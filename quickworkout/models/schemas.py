"""
Pydantic models for pipeline results and API payloads.
"""
from enum import Enum
from typing import Any, Literal, Optional, Union
from pydantic import BaseModel, Field

from quickworkout.models.duration import DurationOptimization, DurationStrategyResult
from quickworkout.models.workout import GeneratedWorkout, WorkoutRequestContext


# --- Parsing ---

class ParseStrategy(str, Enum):
    """Extraction strategy that produced the accepted candidate."""
    DIRECT = "direct"
    FENCED_JSON = "fenced_json"
    FENCED_BLOCK = "fenced_block"
    BEST_CANDIDATE = "best_candidate"
    CLEANUP = "cleanup"
    SYNTHESIS = "synthesis"


class ParseMetrics(BaseModel):
    """Diagnostics gathered while parsing a response."""
    contentLength: int = 0
    truncationPoint: Optional[int] = None
    candidateScore: int = 0
    processingTimeMs: float = 0.0


class ParseResult(BaseModel):
    """Best-effort structured candidate extracted from an LLM response."""
    success: bool
    data: dict[str, Any]
    strategyUsed: ParseStrategy
    issues: list[str] = []
    metrics: ParseMetrics = ParseMetrics()


# --- Normalization ---

class NormalizationResult(BaseModel):
    """Normalized workout plus what was wrong and what was repaired."""
    workout: GeneratedWorkout
    issuesFound: list[str] = []
    fixesApplied: list[str] = []


# --- Validation ---

class ValidationErrorItem(BaseModel):
    """Structural problem that makes a workout invalid."""
    field: str
    message: str
    severity: Literal["error"] = "error"


class ValidationWarningItem(BaseModel):
    """Non-fatal inconsistency."""
    field: str
    message: str
    recommendation: str


class ValidationResult(BaseModel):
    """Pass/fail verdict with a penalty-based score."""
    isValid: bool
    errors: list[ValidationErrorItem] = []
    warnings: list[ValidationWarningItem] = []
    score: int = Field(..., ge=0, le=100)


class QualityScores(BaseModel):
    """Three 0-100 quality scores of a normalized workout."""
    structureScore: float = Field(..., ge=0, le=100)
    completenessScore: float = Field(..., ge=0, le=100)
    consistencyScore: float = Field(..., ge=0, le=100)


# --- Pipeline ---

class ResponseProcessingResult(BaseModel):
    """Everything the pipeline produced for one LLM response."""
    workout: GeneratedWorkout
    strategyUsed: ParseStrategy
    parseMetrics: ParseMetrics
    issuesFound: list[str] = []
    fixesApplied: list[str] = []
    validation: ValidationResult
    scores: QualityScores
    normalizationApplied: bool
    processingTimeMs: float


# --- API ---

class ProcessResponseRequest(BaseModel):
    """Request model for running the pipeline on an existing LLM reply."""
    context: WorkoutRequestContext
    response: Union[dict[str, Any], str]


class DurationStrategyAPIResponse(BaseModel):
    """API wrapper response for the duration strategy endpoint."""
    status: str = "success"
    strategy: DurationStrategyResult
    optimization: DurationOptimization


class WorkoutAPIResponse(BaseModel):
    """API wrapper response for workout endpoints."""
    status: str = "success"
    strategy: DurationStrategyResult
    result: ResponseProcessingResult
