"""
Parsing of raw LLM workout responses.

The model is asked for JSON but frequently wraps it in prose or markdown,
truncates it, or returns something else entirely. Parsing runs an ordered
chain of extraction strategies; the last one synthesizes a minimal workout
from the text so that parsing itself never fails.
"""
import json
import re
import time
import uuid
from functools import partial
from typing import Any, Callable, Optional

from quickworkout.core.config import settings
from quickworkout.core.logger import log_parse_result, logger
from quickworkout.models.schemas import ParseMetrics, ParseResult, ParseStrategy


Candidate = dict[str, Any]
Extractor = Callable[[str], Optional[Candidate]]

CANDIDATE_KEY_SCORES = {
    "id": 10,
    "title": 10,
    "warmup": 20,
    "mainWorkout": 20,
    "cooldown": 20,
    "totalDuration": 10,
}
EXERCISES_ARRAY_SCORE = 5

WRAPPER_KEYS = ("workout", "plan")
PHASE_KEYS = ("warmup", "mainWorkout", "cooldown")

FENCED_JSON_RE = re.compile(r"```json\s*(.*?)```", re.DOTALL | re.IGNORECASE)
FENCED_BLOCK_RE = re.compile(r"```[\w-]*[ \t]*\n?(.*?)```", re.DOTALL)
FENCE_MARKER_RE = re.compile(r"```[\w-]*")
TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")

PREFIX_PATTERNS = [
    re.compile(r"^\s*(?:sure|okay|ok|certainly|absolutely|of course|great)\b[!,.]*\s*", re.IGNORECASE),
    re.compile(r"^\s*here(?:'s|\s+is|\s+are)\s+(?:your|the|a)\b[^\n{]*?[:.!]\s*", re.IGNORECASE),
]
SUFFIX_PATTERNS = [
    re.compile(r"\s*enjoy your workout[!.]*\s*$", re.IGNORECASE),
    re.compile(r"\s*let me know if[^\n]*$", re.IGNORECASE),
    re.compile(r"\s*(?:stay safe|have fun|good luck|happy training)[^\n]*$", re.IGNORECASE),
]

SMART_QUOTES = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'"})

# phase key -> (display name, default exercise, movement type)
PHASE_DEFAULTS = {
    "warmup": ("Warm-up", "Light Cardio Warm-up", "cardio"),
    "mainWorkout": ("Main Workout", "Bodyweight Circuit", "strength"),
    "cooldown": ("Cool-down", "Full Body Stretch", "flexibility"),
}

EXERCISE_KEYWORDS = ("push", "squat", "jump", "plank", "lunge", "crunch", "burpee")
MAX_SYNTHESIZED_EXERCISES = 3
BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")
DIGIT_RE = re.compile(r"\d")
MAX_EXERCISE_NAME_LENGTH = 80
DESCRIPTION_PREVIEW_LENGTH = 200


# --- Decoding helpers ---

def _decode_strict(text: str) -> Any:
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return None


def repair_json_text(text: str) -> str:
    """Fix the syntax slips models commonly make in otherwise valid JSON."""
    repaired = text.translate(SMART_QUOTES)
    repaired = TRAILING_COMMA_RE.sub(r"\1", repaired)
    if '"' not in repaired and "'" in repaired:
        repaired = repaired.replace("'", '"')
    return repaired


def close_truncated_json(text: str) -> str:
    """
    Close the strings, arrays and objects left open by a truncated reply.

    Args:
        text: JSON text starting at its first '{'

    Returns:
        Text with the missing closers appended
    """
    closers: list[str] = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            closers.append("}")
        elif char == "[":
            closers.append("]")
        elif char in "}]" and closers and closers[-1] == char:
            closers.pop()

    completed = text
    if in_string:
        if escaped:
            completed = completed[:-1]
        completed += '"'
    completed = completed.rstrip()
    if completed.endswith(":"):
        completed += " null"
    completed = completed.rstrip(",")
    return completed + "".join(reversed(closers))


def _as_workout_dict(value: Any) -> Optional[Candidate]:
    if isinstance(value, list):
        value = next((item for item in value if isinstance(item, dict)), None)
    if not isinstance(value, dict):
        return None
    if not any(key in value for key in PHASE_KEYS):
        for key in WRAPPER_KEYS:
            if isinstance(value.get(key), dict):
                return value[key]
    return value


def decode_candidate(text: str) -> Optional[Candidate]:
    """Decode text as JSON, retrying once with common repairs."""
    decoded = _as_workout_dict(_decode_strict(text))
    if decoded is None:
        decoded = _as_workout_dict(_decode_strict(repair_json_text(text)))
    return decoded


def score_candidate(candidate: Candidate) -> int:
    """Score how workout-shaped a decoded object is."""
    score = sum(points for key, points in CANDIDATE_KEY_SCORES.items() if key in candidate)
    if isinstance(candidate.get("exercises"), list):
        score += EXERCISES_ARRAY_SCORE
    return score


def balanced_objects(text: str) -> list[str]:
    """
    All balanced '{...}' substrings of text, outermost first.

    Braces inside double-quoted strings are ignored.
    """
    spans: list[tuple[int, int]] = []
    stack: list[int] = []
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            stack.append(index)
        elif char == "}" and stack:
            spans.append((stack.pop(), index))
    spans.sort()
    return [text[start:end + 1] for start, end in spans]


def strip_conversational_text(text: str) -> str:
    """Remove chatty prefixes, sign-offs and markdown fences around JSON."""
    cleaned = FENCE_MARKER_RE.sub("", text)
    changed = True
    while changed:
        changed = False
        for pattern in PREFIX_PATTERNS + SUFFIX_PATTERNS:
            updated = pattern.sub("", cleaned, count=1)
            if updated != cleaned:
                cleaned = updated
                changed = True
    return cleaned.strip()


# --- Strategies ---

def extract_direct(text: str) -> Optional[Candidate]:
    """Strategy 1: the whole response is JSON."""
    return _as_workout_dict(_decode_strict(text.strip()))


def extract_fenced_json(text: str) -> Optional[Candidate]:
    """Strategy 2: a ```json fenced block."""
    for match in FENCED_JSON_RE.finditer(text):
        candidate = decode_candidate(match.group(1).strip())
        if candidate is not None:
            return candidate
    return None


def extract_fenced_block(text: str) -> Optional[Candidate]:
    """Strategy 3: any fenced block."""
    for match in FENCED_BLOCK_RE.finditer(text):
        candidate = decode_candidate(match.group(1).strip())
        if candidate is not None:
            return candidate
    return None


def extract_best_candidate(
    text: str,
    min_score: int = settings.PARSE_MIN_CANDIDATE_SCORE,
    max_candidates: int = settings.PARSE_MAX_BRACE_CANDIDATES,
) -> Optional[Candidate]:
    """Strategy 4: highest-scoring balanced-brace substring."""
    best: Optional[Candidate] = None
    best_score = -1
    for fragment in balanced_objects(text)[:max_candidates]:
        candidate = decode_candidate(fragment)
        if candidate is None:
            continue
        score = score_candidate(candidate)
        if score > best_score:
            best, best_score = candidate, score
    if best is not None and best_score >= min_score:
        return best
    return None


def extract_after_cleanup(text: str) -> Optional[Candidate]:
    """Strategy 5: strip conversational text, then decode first '{' to last '}'."""
    cleaned = strip_conversational_text(text)
    start = cleaned.find("{")
    if start == -1:
        return None
    end = cleaned.rfind("}")
    if end > start:
        candidate = decode_candidate(cleaned[start:end + 1])
        if candidate is not None:
            return candidate
    return decode_candidate(close_truncated_json(cleaned[start:]))


def extract_exercise_lines(text: str) -> list[str]:
    """Lines that look like an exercise: a number plus a known movement keyword."""
    names = []
    for line in text.splitlines():
        stripped = line.strip()
        lowered = stripped.lower()
        if not DIGIT_RE.search(stripped):
            continue
        if not any(keyword in lowered for keyword in EXERCISE_KEYWORDS):
            continue
        name = BULLET_RE.sub("", stripped).strip()[:MAX_EXERCISE_NAME_LENGTH]
        names.append(name or stripped[:MAX_EXERCISE_NAME_LENGTH])
    return names


def _synthesized_exercise(phase_key: str, index: int, name: str, movement_type: str) -> dict:
    return {
        "id": f"{phase_key}_exercise_{index + 1}",
        "name": name,
        "description": f"Perform {name.lower()}",
        "duration": 60,
        "form": f"Perform {name.lower()} with proper form",
        "modifications": [],
        "commonMistakes": [],
        "primaryMuscles": [],
        "secondaryMuscles": [],
        "movementType": movement_type,
        "personalizedNotes": [],
        "difficultyAdjustments": [],
    }


def _synthesized_phase(phase_key: str, duration: int, exercise_names: list[str]) -> dict:
    name, _, movement_type = PHASE_DEFAULTS[phase_key]
    per_exercise = duration // len(exercise_names)
    exercises = []
    for index, exercise_name in enumerate(exercise_names):
        exercise = _synthesized_exercise(phase_key, index, exercise_name, movement_type)
        exercise["duration"] = per_exercise
        exercises.append(exercise)
    return {
        "name": name,
        "duration": duration,
        "exercises": exercises,
        "instructions": f"Complete {name.lower()} phase",
        "tips": [],
    }


def synthesize_workout(text: str) -> Candidate:
    """
    Strategy 6: build a minimal three-phase workout from free text.

    Never fails. Lines naming a recognisable exercise seed the main phase;
    warm-up and cool-down get one generic movement each.
    """
    main_names = (
        extract_exercise_lines(text)[:MAX_SYNTHESIZED_EXERCISES]
        or [PHASE_DEFAULTS["mainWorkout"][1]]
    )

    if text.strip():
        description = text.strip()[:DESCRIPTION_PREVIEW_LENGTH]
        if len(text.strip()) > DESCRIPTION_PREVIEW_LENGTH:
            description += "..."
    else:
        description = "Workout generated with fallback structure"

    return {
        "id": f"fallback_{uuid.uuid4().hex[:12]}",
        "title": "AI Generated Workout",
        "description": description,
        "totalDuration": 1800,
        "estimatedCalories": 200,
        "difficulty": "some experience",
        "equipment": [],
        "warmup": _synthesized_phase("warmup", 300, [PHASE_DEFAULTS["warmup"][1]]),
        "mainWorkout": _synthesized_phase("mainWorkout", 1200, main_names),
        "cooldown": _synthesized_phase("cooldown", 300, [PHASE_DEFAULTS["cooldown"][1]]),
        "reasoning": "Fallback workout created due to response parsing issues",
        "personalizedNotes": ["This workout was generated using fallback structure"],
        "progressionTips": [],
        "safetyReminders": ["Please ensure proper form throughout the workout"],
        "aiModel": "fallback",
        "confidence": 0.5,
        "tags": ["fallback"],
    }


# --- Parser ---

def response_text(raw: Any) -> str:
    """Response as text; decoded objects are dumped back to JSON."""
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw).decode("utf-8", errors="replace")
    try:
        return json.dumps(raw, default=str)
    except (TypeError, ValueError):
        return str(raw)


def detect_truncation(text: str) -> Optional[int]:
    """
    Return the index of the last '}' when the response looks truncated.

    A response looks truncated when, ignoring trailing whitespace and a
    closing code fence, it does not end with '}'. Returns None otherwise.
    """
    tail = text.rstrip()
    if tail.endswith("```"):
        tail = tail[:-3].rstrip()
    if tail.endswith("}"):
        return None
    return text.rfind("}")


class ResponseParser:
    """Turn an opaque LLM response into a workout-shaped candidate."""

    def __init__(
        self,
        min_candidate_score: int = settings.PARSE_MIN_CANDIDATE_SCORE,
        max_brace_candidates: int = settings.PARSE_MAX_BRACE_CANDIDATES,
    ):
        self.min_candidate_score = min_candidate_score
        self.strategies: list[tuple[ParseStrategy, Extractor]] = [
            (ParseStrategy.DIRECT, extract_direct),
            (ParseStrategy.FENCED_JSON, extract_fenced_json),
            (ParseStrategy.FENCED_BLOCK, extract_fenced_block),
            (ParseStrategy.BEST_CANDIDATE, partial(
                extract_best_candidate,
                min_score=min_candidate_score,
                max_candidates=max_brace_candidates,
            )),
            (ParseStrategy.CLEANUP, extract_after_cleanup),
        ]

    def parse(self, raw: Any) -> ParseResult:
        """
        Parse a raw response. Never raises.

        Args:
            raw: Response text or an already-decoded object

        Returns:
            ParseResult tagged with the strategy that produced the data
        """
        started = time.perf_counter()
        issues: list[str] = []
        text = response_text(raw)
        metrics = ParseMetrics(contentLength=len(text))

        if isinstance(raw, dict):
            candidate = _as_workout_dict(raw)
            score = score_candidate(candidate)
            if score < self.min_candidate_score:
                issues.append(f"Structured response has few workout fields (score {score})")
            return self._result(candidate, ParseStrategy.DIRECT, score, issues, metrics, started)

        if not text.strip():
            issues.append("Empty response")
        else:
            truncation_point = detect_truncation(text)
            if truncation_point is not None:
                metrics.truncationPoint = truncation_point
                issues.append(
                    f"Response may be truncated: does not end with '}}' "
                    f"(length {len(text)}, last brace at {truncation_point})"
                )

        provisional: Optional[tuple[ParseStrategy, Candidate, int]] = None
        for strategy, extract in self.strategies:
            candidate = extract(text)
            if candidate is None:
                issues.append(f"Strategy {strategy.value} failed")
                continue
            score = score_candidate(candidate)
            if score >= self.min_candidate_score:
                return self._result(candidate, strategy, score, issues, metrics, started)
            issues.append(f"Strategy {strategy.value} produced a low-confidence candidate (score {score})")
            if provisional is None and score > 0:
                provisional = (strategy, candidate, score)

        if provisional is not None:
            strategy, candidate, score = provisional
            issues.append(f"Accepted low-confidence candidate from {strategy.value}")
            return self._result(candidate, strategy, score, issues, metrics, started)

        logger.warning("ResponseParser: no JSON could be extracted, synthesizing workout from text")
        issues.append("No workout JSON found; synthesized workout from response text")
        candidate = synthesize_workout(text)
        return self._result(
            candidate, ParseStrategy.SYNTHESIS, score_candidate(candidate), issues, metrics, started
        )

    def _result(
        self,
        candidate: Candidate,
        strategy: ParseStrategy,
        score: int,
        issues: list[str],
        metrics: ParseMetrics,
        started: float,
    ) -> ParseResult:
        metrics.candidateScore = score
        metrics.processingTimeMs = (time.perf_counter() - started) * 1000
        log_parse_result(strategy.value, len(issues), metrics.contentLength)
        return ParseResult(
            success=True,
            data=candidate,
            strategyUsed=strategy,
            issues=issues,
            metrics=metrics,
        )
