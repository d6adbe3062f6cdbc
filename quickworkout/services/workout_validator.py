"""
Validation and quality scoring of normalized workouts.
"""
from quickworkout.core.config import settings
from quickworkout.models.duration import DurationStrategyResult
from quickworkout.models.schemas import (
    QualityScores,
    ValidationErrorItem,
    ValidationResult,
    ValidationWarningItem,
)
from quickworkout.models.workout import GeneratedWorkout, WorkoutPhase, WorkoutRequestContext


MAX_SCORE = 100
ERROR_PENALTY = 20
WARNING_PENALTY = 5

# Structure score
PHASE_POINTS = 10
POINTS_PER_EXERCISE = 5
MAX_EXERCISE_POINTS = 40
METADATA_POINTS = {
    "title": 5,
    "description": 5,
    "reasoning": 10,
    "personalizedNotes": 5,
    "safetyReminders": 5,
}

# Completeness score
REQUIRED_FIELDS = ("id", "title", "description", "warmup", "mainWorkout", "cooldown")
ENHANCEMENT_FIELDS = ("reasoning", "personalizedNotes", "progressionTips", "safetyReminders")
REQUIRED_FIELDS_WEIGHT = 50
ENHANCEMENT_FIELDS_WEIGHT = 50

# Consistency score: (threshold, penalty), checked high first
DURATION_DIFF_PENALTIES = ((5 * 60, 20), (2 * 60, 10))
EXERCISE_COUNT_PENALTIES = ((3, 15), (1, 5))

PHASE_LABELS = {
    "warmup": "Warmup",
    "mainWorkout": "Main workout",
    "cooldown": "Cooldown",
}


def _phase_total(workout: GeneratedWorkout) -> int:
    return sum(phase.duration for phase in workout.phases())


def _scheduled_seconds(phase: WorkoutPhase):
    """Exercise time plus rest between exercises, or None if any exercise is untimed."""
    if not phase.exercises or any(ex.duration is None for ex in phase.exercises):
        return None
    work = sum(ex.duration for ex in phase.exercises)
    rest = sum(ex.restTime for ex in phase.exercises[:-1])
    return work + rest


def validate_workout(workout: GeneratedWorkout, context: WorkoutRequestContext) -> ValidationResult:
    """
    Check structural completeness and duration consistency.

    Args:
        workout: Normalized workout
        context: Request the workout was generated for

    Returns:
        ValidationResult; errors make it invalid, warnings only cost points
    """
    errors: list[ValidationErrorItem] = []
    warnings: list[ValidationWarningItem] = []

    if not workout.id:
        errors.append(ValidationErrorItem(field="id", message="Workout ID is required"))
    if not workout.title:
        errors.append(ValidationErrorItem(field="title", message="Workout title is required"))
    for key, label in PHASE_LABELS.items():
        if getattr(workout, key) is None:
            errors.append(ValidationErrorItem(field=key, message=f"{label} phase is required"))

    expected = context.duration * 60
    total = _phase_total(workout)
    if abs(total - expected) > settings.DURATION_TOLERANCE_SECONDS:
        warnings.append(ValidationWarningItem(
            field="duration",
            message=(
                f"Total phase duration ({round(total / 60)}min) differs from "
                f"expected ({context.duration}min)"
            ),
            recommendation="Consider adjusting phase durations",
        ))

    for key, label in PHASE_LABELS.items():
        phase = getattr(workout, key)
        if phase is None:
            continue
        scheduled = _scheduled_seconds(phase)
        if scheduled is None:
            continue
        if abs(phase.duration - scheduled) >= settings.PHASE_TIMING_TOLERANCE_SECONDS:
            warnings.append(ValidationWarningItem(
                field=f"{key}.duration",
                message=(
                    f"{label} is allotted {phase.duration}s but its exercises and rest "
                    f"take {scheduled}s"
                ),
                recommendation="Adjust exercise durations or rest to fit the phase",
            ))

    score = max(0, MAX_SCORE - ERROR_PENALTY * len(errors) - WARNING_PENALTY * len(warnings))

    return ValidationResult(
        isValid=not errors,
        errors=errors,
        warnings=warnings,
        score=score,
    )


def structure_score(workout: GeneratedWorkout) -> float:
    score = PHASE_POINTS * len(workout.phases())
    score += min(MAX_EXERCISE_POINTS, workout.exercise_count() * POINTS_PER_EXERCISE)
    for key, points in METADATA_POINTS.items():
        if getattr(workout, key):
            score += points
    return float(min(MAX_SCORE, score))


def completeness_score(workout: GeneratedWorkout) -> float:
    present = [key for key in REQUIRED_FIELDS if getattr(workout, key)]
    enhanced = [key for key in ENHANCEMENT_FIELDS if getattr(workout, key)]
    score = (
        len(present) / len(REQUIRED_FIELDS) * REQUIRED_FIELDS_WEIGHT
        + len(enhanced) / len(ENHANCEMENT_FIELDS) * ENHANCEMENT_FIELDS_WEIGHT
    )
    return float(min(MAX_SCORE, round(score, 2)))


def consistency_score(workout: GeneratedWorkout, duration_result: DurationStrategyResult) -> float:
    score = MAX_SCORE

    duration_diff = abs(_phase_total(workout) - duration_result.adjustedDuration * 60)
    for threshold, penalty in DURATION_DIFF_PENALTIES:
        if duration_diff > threshold:
            score -= penalty
            break

    expected_count = duration_result.config.exerciseCount.total
    count_diff = abs(workout.exercise_count() - expected_count)
    for threshold, penalty in EXERCISE_COUNT_PENALTIES:
        if count_diff > threshold:
            score -= penalty
            break

    return float(max(0, score))


def score_workout(workout: GeneratedWorkout, duration_result: DurationStrategyResult) -> QualityScores:
    """Compute the structure, completeness and consistency scores."""
    return QualityScores(
        structureScore=structure_score(workout),
        completenessScore=completeness_score(workout),
        consistencyScore=consistency_score(workout, duration_result),
    )
