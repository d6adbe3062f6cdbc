"""
Pytest fixtures for the Quick Workout service tests.
"""
import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch, MagicMock, AsyncMock

# Mock environment variables before importing app
import os
os.environ.setdefault("OPENAI_API_KEY", "test-api-key")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from quickworkout.main import app
from quickworkout.models.workout import WorkoutRequestContext
from quickworkout.services.duration_strategy import DurationStrategy


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def mock_openai():
    """Mock OpenAI API calls."""
    with patch("quickworkout.services.openai_service.client") as mock:
        mock_response = MagicMock()
        mock_response.choices = [
            MagicMock(message=MagicMock(content='{"test": "response"}'))
        ]
        mock.chat.completions.create = AsyncMock(return_value=mock_response)
        yield mock


@pytest.fixture
def make_context():
    """Factory for request contexts with neutral defaults."""
    def _make(**overrides):
        values = {
            "duration": 20,
            "fitnessLevel": "some experience",
            "focus": "Quick Sweat",
            "energyLevel": 5,
            "sorenessAreas": [],
            "equipment": [],
        }
        values.update(overrides)
        return WorkoutRequestContext(**values)
    return _make


@pytest.fixture
def duration_result(make_context):
    """Duration selection for a plain 20-minute request."""
    return DurationStrategy().select_strategy(make_context(duration=20))


@pytest.fixture
def sample_workout_request():
    """Sample workout generation request."""
    return {
        "duration": 20,
        "fitnessLevel": "some experience",
        "focus": "Full Body",
        "energyLevel": 7,
        "sorenessAreas": [],
        "equipment": ["dumbbells"],
        "location": "home"
    }


@pytest.fixture
def sample_workout_response():
    """Well-formed model reply for a 20-minute workout."""
    def exercise(name, duration, movement="strength"):
        return {
            "name": name,
            "description": f"{name} at a steady pace",
            "duration": duration,
            "repetitions": 12,
            "sets": 1,
            "restTime": 15,
            "form": "Keep your core tight",
            "modifications": [],
            "commonMistakes": [],
            "primaryMuscles": ["legs"],
            "secondaryMuscles": [],
            "movementType": movement,
        }

    return {
        "id": "wk_20_full_body",
        "title": "Full Body Express",
        "description": "A balanced full body session",
        "totalDuration": 1200,
        "estimatedCalories": 160,
        "difficulty": "some experience",
        "equipment": ["dumbbells"],
        "warmup": {
            "name": "Warm-up",
            "duration": 180,
            "instructions": "Ease in",
            "tips": [],
            "exercises": [exercise("March in Place", 60, "cardio"), exercise("Arm Circles", 45, "cardio"),
                          exercise("Hip Openers", 45, "flexibility")],
        },
        "mainWorkout": {
            "name": "Main Workout",
            "duration": 840,
            "instructions": "Work hard",
            "tips": ["Breathe"],
            "exercises": [exercise("Goblet Squat", 150), exercise("Dumbbell Row", 150),
                          exercise("Push Up", 150), exercise("Reverse Lunge", 150),
                          exercise("Plank", 180)],
        },
        "cooldown": {
            "name": "Cool-down",
            "duration": 180,
            "instructions": "Slow down",
            "tips": [],
            "exercises": [exercise("Hamstring Stretch", 75, "flexibility"),
                          exercise("Child's Pose", 90, "flexibility")],
        },
        "reasoning": "Balanced split for moderate energy",
        "personalizedNotes": ["Dumbbells used for the main block"],
        "progressionTips": ["Add a set next week"],
        "safetyReminders": ["Stop if anything hurts"],
        "tags": ["full body"],
    }
