"""
OpenAI API service for workout generation.
"""
import openai
from openai import AsyncOpenAI
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)
import logging

from quickworkout.core.config import settings
from quickworkout.core.logger import logger, log_ai_call
from quickworkout.models.duration import DurationStrategyResult
from quickworkout.models.workout import WorkoutRequestContext


# Initialize OpenAI client
client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)

# Per-call timeout: 10s to connect, 90s to receive response.
OPENAI_TIMEOUT = openai.Timeout(90.0, connect=10.0, read=90.0, write=10.0)

# Tenacity retry policy: 3 total attempts, exponential backoff 2s→10s
# Only retries transient errors: rate limits and connection failures
_openai_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type((openai.RateLimitError, openai.APIConnectionError)),
    before_sleep=before_sleep_log(logging.getLogger(__name__), logging.WARNING),
    reraise=True,
)


@_openai_retry
async def call_chat_api(
    system_prompt: str,
    user_prompt: str,
    temperature: float = 0.7
) -> str:
    """
    Call OpenAI Chat API for text generation.

    Retries automatically on RateLimitError / APIConnectionError
    (up to 3 attempts with exponential backoff).

    Args:
        system_prompt: System context
        user_prompt: User request
        temperature: Model temperature

    Returns:
        Raw message content, unparsed

    Raises:
        openai.RateLimitError: If all retries exhausted
    """
    log_ai_call("Chat API", settings.OPENAI_MODEL)

    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt}
    ]

    response = await client.chat.completions.create(
        model=settings.OPENAI_MODEL,
        messages=messages,
        temperature=temperature,
        timeout=OPENAI_TIMEOUT,
    )

    content = response.choices[0].message.content or ""
    logger.info(f"Chat API call successful ({len(content)} chars)")
    return content


# --- Workout Generation ---

WORKOUT_SYSTEM_PROMPT = """
You are an expert fitness coach. Create a safe, personalized quick workout.

Output JSON ONLY with this structure (all durations in SECONDS):
{
  "id": "short-id",
  "title": "Creative Workout Name",
  "description": "One or two sentences",
  "totalDuration": 0,
  "estimatedCalories": 0,
  "difficulty": "new to exercise" | "some experience" | "advanced athlete",
  "equipment": ["..."],
  "warmup": {"name": "Warm-up", "duration": 0, "instructions": "...", "tips": [], "exercises": [EXERCISE]},
  "mainWorkout": {"name": "Main Workout", "duration": 0, "instructions": "...", "tips": [], "exercises": [EXERCISE]},
  "cooldown": {"name": "Cool-down", "duration": 0, "instructions": "...", "tips": [], "exercises": [EXERCISE]},
  "reasoning": "Why this workout fits the user",
  "personalizedNotes": [], "progressionTips": [], "safetyReminders": [], "tags": []
}

EXERCISE = {"name": "...", "description": "...", "duration": 0, "repetitions": 0, "sets": 0,
  "restTime": 0, "form": "...", "modifications": [], "commonMistakes": [], "primaryMuscles": [],
  "secondaryMuscles": [], "movementType": "cardio" | "strength" | "flexibility" | "balance"}

RULES:
1. STRICTLY avoid loading sore areas.
2. Use ONLY available equipment.
3. Match the exercise counts and phase split you are given.
"""


def build_workout_prompt(
    context: WorkoutRequestContext,
    duration_result: DurationStrategyResult
) -> str:
    """Describe the user and the selected duration plan for the model."""
    config = duration_result.config
    counts = config.exerciseCount
    split = config.timeAllocation

    profile_desc = (
        f"Duration: {duration_result.adjustedDuration} minutes ({config.name})\n"
        f"Fitness Level: {context.fitnessLevel}\n"
        f"Focus: {context.focus}\n"
        f"Energy Level: {context.energyLevel}/10\n"
        f"Exercises: {counts.warmup} warm-up, {counts.main} main, {counts.cooldown} cool-down\n"
        f"Phase split: {split.warmupPercent}% / {split.mainPercent}% / {split.cooldownPercent}%\n"
    )

    if context.equipment:
        profile_desc += f"Equipment: {', '.join(context.equipment)}\n"
    else:
        profile_desc += "Equipment: None (Bodyweight only)\n"

    if context.sorenessAreas:
        profile_desc += f"Sore Areas: {', '.join(context.sorenessAreas)}\n"
    if context.location:
        profile_desc += f"Location: {context.location}\n"
    if context.intensity:
        profile_desc += f"Preferred Intensity: {context.intensity}\n"
    for note in duration_result.recommendations:
        profile_desc += f"Note: {note}\n"

    return f"Create a workout for this user:\n{profile_desc}"


async def generate_workout(
    context: WorkoutRequestContext,
    duration_result: DurationStrategyResult
) -> str:
    """
    Ask the model for a workout plan.

    Returns:
        Raw model reply; parsing is left to the response pipeline
    """
    return await call_chat_api(
        WORKOUT_SYSTEM_PROMPT,
        build_workout_prompt(context, duration_result),
        temperature=settings.TEMPERATURE_CREATIVE
    )
