"""
Normalization of parsed workout candidates.

A fixed sequence of processors repairs a loosely-typed candidate into a
schema-complete workout. Each processor is idempotent: running it again on
its own output changes nothing. Issues and fixes are collected in a
NormalizationLog passed explicitly through every processor.
"""
import copy
import math
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union

from quickworkout.core.config import settings
from quickworkout.core.logger import logger
from quickworkout.models.duration import DurationStrategyResult
from quickworkout.models.schemas import NormalizationResult
from quickworkout.models.workout import FITNESS_LEVELS, MOVEMENT_TYPES, GeneratedWorkout
from quickworkout.services.response_parser import PHASE_DEFAULTS


PHASE_KEYS = ("warmup", "mainWorkout", "cooldown")
PHASE_ALIASES = {
    "warmup": ("warm_up", "warmUp", "warm-up"),
    "mainWorkout": ("main", "main_workout", "mainworkout", "workout_main"),
    "cooldown": ("cool_down", "coolDown", "cool-down"),
}
ALLOCATION_FIELDS = {
    "warmup": "warmupPercent",
    "mainWorkout": "mainPercent",
    "cooldown": "cooldownPercent",
}

PLACEHOLDER_TITLES = {
    "workout", "ai workout", "untitled", "untitled workout", "generated workout",
    "ai generated workout", "title", "workout title", "workout name",
    "creative workout name", "string", "n/a", "tbd",
}
DIFFICULTY_SYNONYMS = {
    "beginner": "new to exercise",
    "novice": "new to exercise",
    "easy": "new to exercise",
    "intermediate": "some experience",
    "moderate": "some experience",
    "advanced": "advanced athlete",
    "expert": "advanced athlete",
    "hard": "advanced athlete",
}
DEFAULT_DIFFICULTY = "some experience"

WORKOUT_LIST_FIELDS = ("equipment", "personalizedNotes", "progressionTips", "safetyReminders", "tags")
EXERCISE_STRING_LIST_FIELDS = (
    "equipment", "commonMistakes", "primaryMuscles", "secondaryMuscles", "personalizedNotes",
)
EXERCISE_MIXED_LIST_FIELDS = ("modifications", "difficultyAdjustments")

DEFAULT_REPETITIONS = 10
DEFAULT_SETS = 1
DEFAULT_REST_SECONDS = 30
DEFAULT_MOVEMENT_TYPE = "strength"

# A duration in this range is taken to be minutes. A genuine 1-10 second
# hold cannot be told apart from a minute value, so this is an approximation.
MINUTES_HEURISTIC_RANGE = (1, 10)

NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
CLOCK_RE = re.compile(r"^\s*(\d+):(\d{2})(?::(\d{2}))?\s*$")
DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]+)?", re.IGNORECASE)
UNIT_SECONDS = {
    "s": 1, "sec": 1, "secs": 1, "second": 1, "seconds": 1,
    "m": 60, "min": 60, "mins": 60, "minute": 60, "minutes": 60,
    "h": 3600, "hr": 3600, "hrs": 3600, "hour": 3600, "hours": 3600,
}


@dataclass
class NormalizationLog:
    """Issues noticed and fixes applied during one normalization run."""
    issues: list[str] = field(default_factory=list)
    fixes: list[str] = field(default_factory=list)

    def record(self, issue: Optional[str] = None, fix: Optional[str] = None) -> None:
        if issue:
            self.issues.append(issue)
        if fix:
            self.fixes.append(fix)


# --- Coercion helpers ---

def _text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value
    return None


def _finite(number: Any) -> Optional[float]:
    # json.loads accepts NaN, Infinity, 1e999 and arbitrarily large ints
    try:
        number = float(number)
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _finite(value)
    if isinstance(value, str):
        match = NUMBER_RE.search(value)
        if match:
            return _finite(match.group())
    return None


def _first_present(container: dict, *keys: str) -> Any:
    for key in keys:
        if container.get(key) is not None:
            return container[key]
    return None


def positive_int(value: Any) -> Optional[int]:
    """Value as an int >= 1, reading the first number of a string."""
    number = _number(value)
    if number is None or number < 1:
        return None
    return int(round(number))


def non_negative_int(value: Any) -> Optional[int]:
    number = _number(value)
    if number is None or number < 0:
        return None
    return int(round(number))


def string_list(value: Any) -> list[str]:
    """Coerce a value into a list of strings, dropping anything else."""
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    items = []
    for item in value:
        text = _text(item)
        if text is not None:
            items.append(text)
    return items


def mixed_list(value: Any) -> list[Union[str, dict]]:
    if isinstance(value, (str, dict)):
        value = [value]
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict) or _text(item) is not None]


def parse_duration(value: Any) -> Optional[float]:
    """
    Read a duration without rounding.

    Numbers are returned as-is. Strings may carry a unit ("45s", "2 mins",
    "1 hour") or be a clock value ("1:30", "1:30:00"); a bare number in a
    string is returned unconverted. A number followed by a word that is not
    a time unit ("10 reps") is not a duration.

    Returns:
        The value, or None when it cannot be read or is not a positive
        finite number
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = _finite(value)
    elif isinstance(value, str):
        clock = CLOCK_RE.match(value)
        match = DURATION_RE.search(value)
        if clock:
            first, second, third = clock.groups()
            if third is None:
                seconds = int(first) * 60 + int(second)
            else:
                seconds = int(first) * 3600 + int(second) * 60 + int(third)
        elif match:
            unit = (match.group(2) or "").lower()
            if unit and unit not in UNIT_SECONDS:
                return None
            seconds = _finite(match.group(1))
            if seconds is not None and unit:
                seconds *= UNIT_SECONDS[unit]
        else:
            return None
    else:
        return None
    if seconds is None or seconds <= 0:
        return None
    return seconds


def duration_seconds(value: Any) -> Optional[int]:
    """Read a duration into whole seconds; None if unreadable or under one second."""
    seconds = parse_duration(value)
    if seconds is None:
        return None
    seconds = int(round(seconds))
    return seconds if seconds > 0 else None


def _in_minutes_range(value: float) -> bool:
    low, high = MINUTES_HEURISTIC_RANGE
    return low <= value <= high


def normalize_duration_field(
    container: dict, key: str, label: str, log: NormalizationLog
) -> None:
    """
    Convert container[key] to whole seconds, applying the minutes heuristic.

    The heuristic range is checked on the unrounded value. Values outside it
    are rounded away from the range so that a second pass leaves them alone:
    under one second is invalid, just above the range rounds up.
    """
    raw = container.get(key)
    if raw is None:
        return

    value = parse_duration(raw)
    low, high = MINUTES_HEURISTIC_RANGE
    if value is not None and value < low:
        value = None
    if value is None:
        container[key] = None
        log.record(f"Invalid duration for {label}: {raw!r}", f"Removed duration for {label}")
        return

    if _in_minutes_range(value):
        seconds = int(round(value * 60))
        log.record(
            f"{label} duration appears to be in minutes ({value:g})",
            f"Converted {label} duration from minutes to seconds ({seconds})",
        )
    else:
        seconds = max(int(round(value)), high + 1)
        if not isinstance(raw, (int, float)) or seconds != raw:
            log.record(None, f"Converted {label} duration {raw!r} to {seconds} seconds")

    container[key] = seconds


def _iso_timestamp(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        try:
            # Epoch milliseconds are far larger than any epoch-seconds value
            seconds = value / 1000 if value > 1e11 else value
            return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text).isoformat()
        except ValueError:
            return None
    return None


# --- Processors ---

class NormalizationProcessor:
    """One idempotent repair step over a workout dict."""

    name = "NormalizationProcessor"

    def process(
        self, workout: dict, duration_result: DurationStrategyResult, log: NormalizationLog
    ) -> dict:
        raise NotImplementedError


class MetadataProcessor(NormalizationProcessor):
    """Top-level fields, phase shape and array defaults."""

    name = "MetadataProcessor"

    def process(self, workout, duration_result, log):
        minutes = duration_result.adjustedDuration
        config = duration_result.config

        self._resolve_phases(workout, log)

        if _text(workout.get("id")) is None:
            workout["id"] = f"workout_{uuid.uuid4().hex[:12]}"
            log.record("Missing workout ID", f"Generated workout ID: {workout['id']}")
        else:
            workout["id"] = _text(workout["id"])

        title = _text(workout.get("title"))
        if title is None or title.strip().lower() in PLACEHOLDER_TITLES:
            workout["title"] = f"{minutes}-Minute AI Workout"
            log.record("Missing or placeholder title", f"Set title to {workout['title']}")
        else:
            workout["title"] = title

        if _text(workout.get("description")) is None:
            workout["description"] = (
                f"A {minutes}-minute {config.name.lower()} workout: {config.description.lower()}"
            )
            log.record("Missing description", "Generated description")
        else:
            workout["description"] = _text(workout["description"])

        reasoning = workout.get("reasoning")
        if isinstance(reasoning, list):
            workout["reasoning"] = " ".join(string_list(reasoning))
            log.record("Reasoning given as a list", "Joined reasoning into text")
        elif _text(reasoning) is None:
            workout["reasoning"] = ""
        else:
            workout["reasoning"] = _text(reasoning)

        timestamp = _iso_timestamp(workout.get("generatedAt"))
        if timestamp is None:
            timestamp = datetime.now(timezone.utc).isoformat()
            if workout.get("generatedAt") is not None:
                log.record(f"Unreadable generatedAt: {workout['generatedAt']!r}")
            log.record(None, "Set generatedAt timestamp")
        workout["generatedAt"] = timestamp

        if _text(workout.get("aiModel")) is None:
            workout["aiModel"] = settings.OPENAI_MODEL
            log.record(None, f"Set aiModel to {settings.OPENAI_MODEL}")

        confidence = workout.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)) \
                or not 0 <= confidence <= 1:
            workout["confidence"] = settings.DEFAULT_CONFIDENCE
            log.record(None, f"Set default confidence {settings.DEFAULT_CONFIDENCE}")

        workout["difficulty"] = self._difficulty(workout.get("difficulty"), log)

        calories = positive_int(workout.get("estimatedCalories"))
        if calories is None:
            calories = minutes * settings.CALORIES_PER_MINUTE
            log.record(None, f"Estimated calories as {calories}")
        workout["estimatedCalories"] = calories

        defaulted = []
        for key in WORKOUT_LIST_FIELDS:
            value = workout.get(key)
            if value is None:
                defaulted.append(key)
            elif not isinstance(value, list):
                log.record(f"Malformed array field: {key}", f"Coerced {key} to a list")
            workout[key] = string_list(value)
        if defaulted:
            log.record(None, f"Defaulted missing arrays to []: {', '.join(defaulted)}")

        return workout

    def _resolve_phases(self, workout: dict, log: NormalizationLog) -> None:
        for key in PHASE_KEYS:
            if workout.get(key) is None:
                for alias in PHASE_ALIASES[key]:
                    if workout.get(alias) is not None:
                        workout[key] = workout.pop(alias)
                        log.record(f"Phase given as '{alias}'", f"Mapped '{alias}' to '{key}'")
                        break

        if workout.get("mainWorkout") is None and isinstance(workout.get("exercises"), list):
            workout["mainWorkout"] = {"exercises": workout.pop("exercises")}
            log.record("Main exercises given at top level", "Moved top-level exercises into mainWorkout")

        for key in PHASE_KEYS:
            phase = workout.get(key)
            if phase is None:
                continue
            if isinstance(phase, list):
                phase = {"exercises": phase}
                log.record(f"{key} given as a bare exercise list", f"Wrapped {key} exercises in a phase")
            elif not isinstance(phase, dict):
                log.record(f"Malformed {key} phase: {phase!r}", f"Dropped malformed {key} phase")
                workout[key] = None
                continue

            display_name = PHASE_DEFAULTS[key][0]
            if _text(phase.get("name")) is None:
                phase["name"] = display_name
            else:
                phase["name"] = _text(phase["name"])
            if _text(phase.get("instructions")) is None:
                phase["instructions"] = f"Complete {display_name.lower()} phase"
            else:
                phase["instructions"] = _text(phase["instructions"])
            phase["tips"] = string_list(phase.get("tips"))
            workout[key] = phase

    def _difficulty(self, value: Any, log: NormalizationLog) -> str:
        text = _text(value)
        if text is not None:
            lowered = text.strip().lower()
            if lowered in FITNESS_LEVELS:
                return lowered
            if lowered in DIFFICULTY_SYNONYMS:
                log.record(None, f"Mapped difficulty '{text}' to '{DIFFICULTY_SYNONYMS[lowered]}'")
                return DIFFICULTY_SYNONYMS[lowered]
            log.record(f"Unknown difficulty: {text}")
        log.record(None, f"Set difficulty to {DEFAULT_DIFFICULTY}")
        return DEFAULT_DIFFICULTY


class DurationProcessor(NormalizationProcessor):
    """Derive total and phase durations from the selected duration."""

    name = "DurationProcessor"

    def process(self, workout, duration_result, log):
        target = duration_result.adjustedDuration * 60
        allocation = duration_result.config.timeAllocation

        if workout.get("totalDuration") != target:
            log.record(
                "Total duration mismatch with target",
                f"Set total duration to {target} seconds",
            )
            workout["totalDuration"] = target

        for key in PHASE_KEYS:
            phase = workout.get(key)
            if not isinstance(phase, dict):
                continue

            stated = parse_duration(phase.get("duration"))
            if stated is not None and _in_minutes_range(stated):
                log.record(
                    f"{key} duration appears to be in minutes",
                    f"Converted {key} duration from minutes to seconds",
                )

            phase_target = round(target * getattr(allocation, ALLOCATION_FIELDS[key]) / 100)
            if phase.get("duration") != phase_target:
                phase["duration"] = phase_target
                log.record(None, f"Adjusted {key} duration to {phase_target} seconds")

            exercises = phase.get("exercises")
            if isinstance(exercises, list):
                for exercise in exercises:
                    if isinstance(exercise, dict):
                        label = f"{key} exercise '{_text(exercise.get('name')) or 'unnamed'}'"
                        normalize_duration_field(exercise, "duration", label, log)

        phase_total = sum(
            workout[key]["duration"] for key in PHASE_KEYS if isinstance(workout.get(key), dict)
        )
        if workout.get("warmup") and workout.get("mainWorkout") and workout.get("cooldown") \
                and abs(phase_total - target) > 60:
            log.record(f"Total phase duration ({phase_total}s) differs from target ({target}s)")

        return workout


class ExerciseProcessor(NormalizationProcessor):
    """Fill in and sanitise every exercise of every phase."""

    name = "ExerciseProcessor"

    def process(self, workout, duration_result, log):
        for key in PHASE_KEYS:
            phase = workout.get(key)
            if not isinstance(phase, dict):
                continue

            raw_exercises = phase.get("exercises")
            if raw_exercises is None:
                raw_exercises = []
            elif not isinstance(raw_exercises, list):
                log.record(f"Malformed exercises in {key}", f"Reset {key} exercises")
                raw_exercises = []

            exercises = []
            for item in raw_exercises:
                if isinstance(item, str) and item.strip():
                    log.record(f"Exercise given as text in {key}", f"Converted '{item}' to an exercise")
                    item = {"name": item}
                if not isinstance(item, dict):
                    log.record(f"Dropped malformed exercise in {key}: {item!r}")
                    continue
                exercises.append(item)

            if not exercises:
                _, default_name, movement_type = PHASE_DEFAULTS[key]
                exercises.append({"name": default_name, "movementType": movement_type})
                log.record(f"No exercises in {key}", f"Added default exercise '{default_name}' to {key}")

            phase["exercises"] = [
                self._normalize_exercise(exercise, index, key, log)
                for index, exercise in enumerate(exercises)
            ]

        return workout

    def _normalize_exercise(
        self, exercise: dict, index: int, phase_key: str, log: NormalizationLog
    ) -> dict:
        if _text(exercise.get("id")) is None:
            exercise["id"] = f"{phase_key}_exercise_{index + 1}"
            log.record(f"Missing exercise ID in {phase_key}", f"Generated exercise ID: {exercise['id']}")
        else:
            exercise["id"] = _text(exercise["id"])

        name = _text(exercise.get("name"))
        if name is None:
            name = f"{PHASE_DEFAULTS[phase_key][0]} Exercise {index + 1}"
            log.record(f"Missing exercise name in {phase_key}", f"Generated exercise name: {name}")
        exercise["name"] = name

        if _text(exercise.get("description")) is None:
            exercise["description"] = f"Perform {name.lower()}"
            log.record(None, f"Generated description for {name}")
        else:
            exercise["description"] = _text(exercise["description"])

        if _text(exercise.get("form")) is None:
            exercise["form"] = f"Perform {name.lower()} with proper form"
            log.record(None, f"Generated form instructions for {name}")
        else:
            exercise["form"] = _text(exercise["form"])

        normalize_duration_field(exercise, "duration", f"{phase_key} exercise '{name}'", log)

        repetitions = _first_present(exercise, "repetitions", "reps")
        if not isinstance(repetitions, int) or isinstance(repetitions, bool) or repetitions < 1:
            parsed = positive_int(repetitions)
            exercise["repetitions"] = parsed if parsed is not None else DEFAULT_REPETITIONS
            log.record(None, f"Set repetitions for {name} to {exercise['repetitions']}")
        else:
            exercise["repetitions"] = repetitions

        sets = exercise.get("sets")
        if not isinstance(sets, int) or isinstance(sets, bool) or sets < 1:
            parsed = positive_int(sets)
            exercise["sets"] = parsed if parsed is not None else DEFAULT_SETS
            log.record(None, f"Set sets for {name} to {exercise['sets']}")

        rest = _first_present(exercise, "restTime", "rest", "restSeconds")
        if not isinstance(rest, int) or isinstance(rest, bool) or rest < 0:
            parsed = duration_seconds(rest) if isinstance(rest, str) else non_negative_int(rest)
            exercise["restTime"] = parsed if parsed is not None else DEFAULT_REST_SECONDS
            log.record(None, f"Set rest time for {name} to {exercise['restTime']} seconds")
        else:
            exercise["restTime"] = rest

        for key in EXERCISE_STRING_LIST_FIELDS:
            exercise[key] = string_list(exercise.get(key))
        for key in EXERCISE_MIXED_LIST_FIELDS:
            exercise[key] = mixed_list(exercise.get(key))

        movement_type = _text(exercise.get("movementType"))
        if movement_type is not None and movement_type.strip().lower() in MOVEMENT_TYPES:
            exercise["movementType"] = movement_type.strip().lower()
        else:
            exercise["movementType"] = DEFAULT_MOVEMENT_TYPE
            log.record(None, f"Set default movement type for {name}")

        return exercise


# --- Coordinator ---

class WorkoutNormalizer:
    """Run the processors in order and build the typed workout."""

    def __init__(self, processors: Optional[list[NormalizationProcessor]] = None):
        self.processors = processors or [
            MetadataProcessor(),
            DurationProcessor(),
            ExerciseProcessor(),
        ]

    def normalize(
        self,
        candidate: Union[dict, GeneratedWorkout],
        duration_result: DurationStrategyResult,
    ) -> NormalizationResult:
        """
        Normalize a parsed candidate against the selected duration.

        Args:
            candidate: Parsed candidate, or a previously normalized workout
            duration_result: Duration selection for this request

        Returns:
            Typed workout with the issues found and fixes applied

        Raises:
            pydantic.ValidationError: If the repaired candidate still does
                not fit the workout schema
        """
        if isinstance(candidate, GeneratedWorkout):
            workout = candidate.model_dump(mode="json")
        elif isinstance(candidate, dict):
            workout = copy.deepcopy(candidate)
        else:
            workout = {}

        log = NormalizationLog()
        if not isinstance(candidate, (dict, GeneratedWorkout)):
            log.record(f"Candidate is not an object: {type(candidate).__name__}")

        for processor in self.processors:
            workout = processor.process(workout, duration_result, log)
            logger.debug(f"WorkoutNormalizer: {processor.name} done")

        logger.info(
            f"WorkoutNormalizer: {len(log.issues)} issues found, {len(log.fixes)} fixes applied"
        )
        return NormalizationResult(
            workout=GeneratedWorkout.model_validate(workout),
            issuesFound=log.issues,
            fixesApplied=log.fixes,
        )
