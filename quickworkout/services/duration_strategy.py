"""
Duration selection for quick workouts.

Maps a requested duration onto one of the canonical durations, adjusts it for
the user's current state and explains the decision.
"""
from quickworkout.core.logger import logger
from quickworkout.models.duration import (
    DurationConfig,
    DurationOptimization,
    DurationStrategyResult,
    PhaseAllocation,
)
from quickworkout.models.workout import WorkoutRequestContext
from quickworkout.services.duration_catalog import SUPPORTED_DURATIONS, get_duration_config


LOW_ENERGY_THRESHOLD = 3
HIGH_ENERGY_THRESHOLD = 8
LOW_ENERGY_MIN_DURATION = 10
HIGH_SORENESS_AREAS = 3
HIGH_SORENESS_MIN_DURATION = 15
BEGINNER_LEVEL = "new to exercise"
ADVANCED_LEVEL = "advanced athlete"
BEGINNER_MAX_DURATION = 30
MAX_ALTERNATIVES = 3
LARGE_ADJUSTMENT_RATIO = 0.5


def closest_supported_duration(
    requested: int, durations: tuple[int, ...] = SUPPORTED_DURATIONS
) -> int:
    """
    Nearest canonical duration to the request.

    Durations are scanned in ascending order and only a strictly closer one
    replaces the current pick, so a tie resolves to the shorter duration.
    """
    ordered = sorted(durations)
    best = ordered[0]
    for duration in ordered[1:]:
        if abs(duration - requested) < abs(best - requested):
            best = duration
    return best


class DurationStrategy:
    """Select and explain the canonical duration for a request."""

    def __init__(self, supported_durations: tuple[int, ...] = SUPPORTED_DURATIONS):
        self.supported_durations = tuple(sorted(supported_durations))

    def select_strategy(self, context: WorkoutRequestContext) -> DurationStrategyResult:
        """
        Select the canonical duration for a request.

        Args:
            context: Request context

        Returns:
            Selected config with reasons, recommendations and alternatives
        """
        requested = context.duration
        logger.info(f"DurationStrategy: selecting strategy for {requested}min workout")

        supported = requested in self.supported_durations
        duration = requested if supported else closest_supported_duration(requested, self.supported_durations)
        duration, applied = self._apply_context_adjustments(duration, context)

        config = get_duration_config(duration)
        is_exact = duration == requested

        reasons = []
        if not supported:
            reasons.append(f"{requested}min duration not directly supported")
        reasons.extend(applied)
        adjustment_reason = None if is_exact else "; ".join(reasons)

        logger.info(
            f"DurationStrategy: selected {duration}min ({config.name}) - exact match: {is_exact}"
        )

        return DurationStrategyResult(
            config=config,
            adjustedDuration=duration,
            isExactMatch=is_exact,
            adjustmentReason=adjustment_reason,
            recommendations=self._recommendations(context, config),
            alternativeOptions=self._alternative_options(duration, requested),
        )

    def _apply_context_adjustments(
        self, duration: int, context: WorkoutRequestContext
    ) -> tuple[int, list[str]]:
        applied: list[str] = []

        if context.energyLevel <= LOW_ENERGY_THRESHOLD:
            shorter = [
                d for d in self.supported_durations
                if LOW_ENERGY_MIN_DURATION <= d < duration
            ]
            if shorter:
                duration = max(shorter)
                applied.append(
                    f"adjusted down due to low energy level ({context.energyLevel}/10)"
                )
                logger.info(f"DurationStrategy: low energy - adjusting to {duration}min")

        if len(context.sorenessAreas) >= HIGH_SORENESS_AREAS:
            gentler = [
                d for d in self.supported_durations
                if HIGH_SORENESS_MIN_DURATION <= d < duration
            ]
            if gentler:
                duration = max(gentler)
                applied.append(
                    f"adjusted down due to high soreness ({len(context.sorenessAreas)} areas)"
                )
                logger.info(f"DurationStrategy: high soreness - adjusting to {duration}min")

        if context.fitnessLevel == BEGINNER_LEVEL and duration > BEGINNER_MAX_DURATION:
            duration = BEGINNER_MAX_DURATION
            applied.append("adjusted down by beginner cap")
            logger.info(f"DurationStrategy: new to exercise - capping at {duration}min")

        return duration, applied

    def _recommendations(
        self, context: WorkoutRequestContext, config: DurationConfig
    ) -> list[str]:
        recommendations = []

        if context.energyLevel <= LOW_ENERGY_THRESHOLD:
            recommendations.append(
                f"With low energy ({context.energyLevel}/10), focus on gentle movements "
                "and listen to your body"
            )
        elif context.energyLevel >= HIGH_ENERGY_THRESHOLD:
            recommendations.append(
                f"High energy level ({context.energyLevel}/10) - great opportunity for an "
                f"intense {config.name.lower()} session"
            )

        if context.sorenessAreas:
            recommendations.append(
                f"Avoid intense work on sore areas: {', '.join(context.sorenessAreas)}"
            )

        if config.duration <= 10:
            recommendations.append(
                f"Short {config.duration}min workout - focus on compound movements "
                "for maximum efficiency"
            )
        elif config.duration >= 30:
            recommendations.append(
                f"Longer {config.duration}min workout - good opportunity for varied, "
                "comprehensive training"
            )

        if not context.equipment:
            recommendations.append("Body weight workout - focus on form and controlled movements")
        elif len(context.equipment) >= 3:
            recommendations.append("Good equipment variety - opportunity for diverse exercise selection")

        if context.fitnessLevel == BEGINNER_LEVEL:
            recommendations.append(
                "As someone new to exercise, focus on learning proper form over intensity"
            )
        elif context.fitnessLevel == ADVANCED_LEVEL:
            recommendations.append(
                "Advanced level - opportunity for complex movements and higher intensity"
            )

        return recommendations

    def _alternative_options(self, selected: int, requested: int) -> list[DurationConfig]:
        others = [d for d in self.supported_durations if d != selected]
        # sorted() is stable and the input is ascending, so ties keep the shorter first
        others = sorted(others, key=lambda d: abs(d - requested))
        return [get_duration_config(d) for d in others[:MAX_ALTERNATIVES]]

    def validate_strategy(
        self, result: DurationStrategyResult, context: WorkoutRequestContext
    ) -> bool:
        """Check that a result points at a canonical duration."""
        if result.adjustedDuration not in self.supported_durations:
            logger.error(
                f"DurationStrategy: invalid duration {result.adjustedDuration}min not in supported list"
            )
            return False

        if result.config.duration != result.adjustedDuration:
            logger.error(
                f"DurationStrategy: config mismatch for {result.adjustedDuration}min"
            )
            return False

        ratio = abs(result.adjustedDuration - context.duration) / context.duration
        if ratio > LARGE_ADJUSTMENT_RATIO:
            logger.warning(
                f"DurationStrategy: large adjustment from {context.duration}min to "
                f"{result.adjustedDuration}min ({round(ratio * 100)}%)"
            )

        return True

    def create_duration_optimization(
        self, context: WorkoutRequestContext, result: DurationStrategyResult
    ) -> DurationOptimization:
        """Describe the per-phase time budget of a selection."""
        config = result.config
        total_seconds = result.adjustedDuration * 60
        allocation = config.timeAllocation

        recommendations = []
        if not result.isExactMatch:
            recommendations.append(
                f"Adjusted from {context.duration}min to {result.adjustedDuration}min "
                "for optimal workout structure"
            )
        if config.complexity == "minimal":
            recommendations.append(
                f"Simple structure with {config.exerciseCount.total} exercises for time efficiency"
            )
        elif config.complexity in ("comprehensive", "advanced"):
            recommendations.append(
                f"Comprehensive structure with {config.exerciseCount.total} exercises "
                "for complete training"
            )

        return DurationOptimization(
            requestedDuration=context.duration,
            actualDuration=result.adjustedDuration,
            isOptimal=result.isExactMatch,
            phaseAllocation=PhaseAllocation(
                warmup=round(total_seconds * allocation.warmupPercent / 100),
                main=round(total_seconds * allocation.mainPercent / 100),
                cooldown=round(total_seconds * allocation.cooldownPercent / 100),
            ),
            recommendations=recommendations,
            alternativeDurations=[alt.duration for alt in result.alternativeOptions],
        )

    def get_supported_durations(self) -> list[int]:
        return list(self.supported_durations)
