"""
End-to-end processing of an LLM workout response.

parse -> normalize -> validate -> score, in strict sequence. The processor
always returns a workout; anything wrong with the response is reported in
the result instead of raised.
"""
import time
from typing import Any

from pydantic import ValidationError

from quickworkout.core.logger import log_error, logger
from quickworkout.models.duration import DurationStrategyResult
from quickworkout.models.schemas import ParseStrategy, ResponseProcessingResult
from quickworkout.models.workout import WorkoutRequestContext
from quickworkout.services.response_parser import ResponseParser, response_text, synthesize_workout
from quickworkout.services.workout_normalizer import WorkoutNormalizer
from quickworkout.services.workout_validator import score_workout, validate_workout


class ResponseProcessor:
    """Turn a raw LLM response into a validated, scored workout."""

    def __init__(self, parser: ResponseParser = None, normalizer: WorkoutNormalizer = None):
        self.parser = parser or ResponseParser()
        self.normalizer = normalizer or WorkoutNormalizer()

    def process(
        self,
        raw_response: Any,
        duration_result: DurationStrategyResult,
        context: WorkoutRequestContext,
    ) -> ResponseProcessingResult:
        """
        Process one LLM response.

        Args:
            raw_response: Response text or decoded object from the model
            duration_result: Duration selected before the model call
            context: Request context

        Returns:
            Workout with parse, normalization, validation and score details
        """
        started = time.perf_counter()
        logger.info("ResponseProcessor: processing AI response")

        parsed = self.parser.parse(raw_response)
        strategy = parsed.strategyUsed
        issues = list(parsed.issues)

        try:
            normalized = self.normalizer.normalize(parsed.data, duration_result)
        except ValidationError as e:
            log_error("Workout normalization", e)
            issues.append(f"Normalized candidate failed schema validation: {e.error_count()} errors")
            strategy = ParseStrategy.SYNTHESIS
            fallback = synthesize_workout(response_text(raw_response))
            normalized = self.normalizer.normalize(fallback, duration_result)

        issues.extend(normalized.issuesFound)
        workout = normalized.workout

        validation = validate_workout(workout, context)
        scores = score_workout(workout, duration_result)
        processing_ms = (time.perf_counter() - started) * 1000

        logger.info(
            f"ResponseProcessor: strategy={strategy.value} valid={validation.isValid} "
            f"score={validation.score} fixes={len(normalized.fixesApplied)} ({processing_ms:.0f}ms)"
        )

        return ResponseProcessingResult(
            workout=workout,
            strategyUsed=strategy,
            parseMetrics=parsed.metrics,
            issuesFound=issues,
            fixesApplied=normalized.fixesApplied,
            validation=validation,
            scores=scores,
            normalizationApplied=bool(normalized.fixesApplied),
            processingTimeMs=processing_ms,
        )
