"""
Pydantic models for workout requests and generated workouts.
Provides runtime validation and auto-documentation.
"""
from datetime import datetime
from typing import Any, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


FitnessLevel = Literal["new to exercise", "some experience", "advanced athlete"]
MovementType = Literal["cardio", "strength", "flexibility", "balance"]

FITNESS_LEVELS: tuple[str, ...] = ("new to exercise", "some experience", "advanced athlete")
MOVEMENT_TYPES: tuple[str, ...] = ("cardio", "strength", "flexibility", "balance")


class WorkoutRequestContext(BaseModel):
    """Request context for a quick workout."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "duration": 20,
                "fitnessLevel": "some experience",
                "focus": "Quick Sweat",
                "energyLevel": 6,
                "sorenessAreas": ["legs"],
                "equipment": ["dumbbells"],
                "location": "home"
            }
        }
    )

    duration: int = Field(..., gt=0, description="Requested workout duration in minutes")
    fitnessLevel: FitnessLevel = Field(..., description="User's fitness level")
    focus: str = Field(default="general fitness", max_length=200)
    energyLevel: int = Field(..., ge=1, le=10, description="Current energy level (1-10)")
    sorenessAreas: list[str] = Field(default=[], description="Body areas that are sore")
    equipment: list[str] = Field(default=[], description="Available equipment")
    location: Optional[str] = Field(None, description="e.g., home, gym, outdoor")
    intensity: Optional[str] = Field(None, description="Preferred intensity")


class Exercise(BaseModel):
    """Single exercise in a workout phase."""

    id: str
    name: str
    description: str
    duration: Optional[int] = Field(None, description="Duration in seconds for timed work")
    repetitions: int = Field(10, ge=1)
    sets: int = Field(1, ge=1)
    restTime: int = Field(30, ge=0, description="Rest after the exercise in seconds")
    equipment: list[str] = []
    form: str = ""
    modifications: list[Union[str, dict[str, Any]]] = []
    commonMistakes: list[str] = []
    primaryMuscles: list[str] = []
    secondaryMuscles: list[str] = []
    movementType: MovementType = "strength"
    personalizedNotes: list[str] = []
    difficultyAdjustments: list[Union[str, dict[str, Any]]] = []


class WorkoutPhase(BaseModel):
    """Warm-up, main or cool-down block."""

    name: str
    duration: int = Field(..., ge=0, description="Phase duration in seconds")
    exercises: list[Exercise]
    instructions: str = ""
    tips: list[str] = []


class GeneratedWorkout(BaseModel):
    """Schema-complete workout produced by normalization."""

    id: str = ""
    title: str = ""
    description: str = ""
    totalDuration: int = Field(0, ge=0, description="Total duration in seconds")
    estimatedCalories: int = 0
    difficulty: FitnessLevel = "some experience"
    equipment: list[str] = []

    warmup: Optional[WorkoutPhase] = None
    mainWorkout: Optional[WorkoutPhase] = None
    cooldown: Optional[WorkoutPhase] = None

    reasoning: str = ""
    personalizedNotes: list[str] = []
    progressionTips: list[str] = []
    safetyReminders: list[str] = []

    generatedAt: Optional[datetime] = None
    aiModel: str = ""
    confidence: float = Field(0.8, ge=0, le=1)
    tags: list[str] = []

    def phases(self) -> list[WorkoutPhase]:
        """Present phases in workout order."""
        return [p for p in (self.warmup, self.mainWorkout, self.cooldown) if p is not None]

    def exercise_count(self) -> int:
        return sum(len(p.exercises) for p in self.phases())
