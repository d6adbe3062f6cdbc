"""
Canonical workout durations and their static configuration.
"""
from types import MappingProxyType

from quickworkout.models.duration import DurationConfig, ExerciseCount, TimeAllocation


def _config(
    duration: int,
    name: str,
    description: str,
    counts: tuple[int, int, int],
    allocation: tuple[int, int, int],
    complexity: str,
    variable_requirements: str,
) -> DurationConfig:
    warmup, main, cooldown = counts
    warmup_pct, main_pct, cooldown_pct = allocation
    return DurationConfig(
        duration=duration,
        name=name,
        description=description,
        exerciseCount=ExerciseCount(
            warmup=warmup, main=main, cooldown=cooldown, total=warmup + main + cooldown
        ),
        timeAllocation=TimeAllocation(
            warmupPercent=warmup_pct, mainPercent=main_pct, cooldownPercent=cooldown_pct
        ),
        complexity=complexity,
        variableRequirements=variable_requirements,
    )


DURATION_CONFIGS: MappingProxyType = MappingProxyType({
    5: _config(5, "Quick Break", "Perfect for desk breaks",
               (1, 2, 1), (20, 60, 20), "minimal", "core"),
    10: _config(10, "Mini Session", "Short but effective",
                (2, 3, 1), (15, 70, 15), "simple", "core"),
    15: _config(15, "Express", "Efficient workout",
                (2, 4, 2), (13, 74, 13), "standard", "standard"),
    20: _config(20, "Focused", "Balanced duration",
                (3, 5, 2), (15, 70, 15), "standard", "standard"),
    30: _config(30, "Complete", "Full workout experience",
                (3, 8, 3), (13, 74, 13), "comprehensive", "enhanced"),
    45: _config(45, "Extended", "Maximum benefit",
                (4, 12, 4), (11, 78, 11), "advanced", "full"),
})

SUPPORTED_DURATIONS: tuple[int, ...] = tuple(sorted(DURATION_CONFIGS))
DEFAULT_DURATION = 30


def get_duration_config(duration: int) -> DurationConfig:
    """Return the config for a canonical duration, or the default one."""
    return DURATION_CONFIGS.get(duration, DURATION_CONFIGS[DEFAULT_DURATION])


def get_exercise_count(duration: int) -> ExerciseCount:
    return get_duration_config(duration).exerciseCount


def get_time_allocation(duration: int) -> dict[str, int]:
    """
    Per-phase time in whole minutes for a duration.

    Args:
        duration: Workout duration in minutes

    Returns:
        Dict with warmup, main and cooldown minutes
    """
    allocation = get_duration_config(duration).timeAllocation
    return {
        "warmup": round(duration * allocation.warmupPercent / 100),
        "main": round(duration * allocation.mainPercent / 100),
        "cooldown": round(duration * allocation.cooldownPercent / 100),
    }
