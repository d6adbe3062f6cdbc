"""
Tests for the LLM response parser and its extraction strategies.
"""
import json

import pytest

from quickworkout.models.schemas import ParseStrategy
from quickworkout.services.response_parser import (
    ResponseParser,
    balanced_objects,
    close_truncated_json,
    detect_truncation,
    extract_exercise_lines,
    repair_json_text,
    score_candidate,
    strip_conversational_text,
    synthesize_workout,
)


@pytest.fixture
def parser():
    return ResponseParser()


class TestHelpers:
    """Tests for the decoding helpers."""

    def test_score_candidate(self, sample_workout_response):
        """Workout-shaped keys earn points."""
        assert score_candidate(sample_workout_response) == 90
        assert score_candidate({"title": "x"}) == 10
        assert score_candidate({"exercises": []}) == 5
        assert score_candidate({}) == 0

    def test_repair_trailing_commas(self):
        """Trailing commas before closers are removed."""
        repaired = repair_json_text('{"a": [1, 2,], "b": 3,}')
        assert json.loads(repaired) == {"a": [1, 2], "b": 3}

    def test_repair_single_quotes(self):
        """Single-quoted JSON is converted when no double quotes are present."""
        assert json.loads(repair_json_text("{'title': 'Blast'}")) == {"title": "Blast"}

    def test_close_truncated_json(self):
        """Open strings, arrays and objects are closed."""
        text = '{"id": "w1", "warmup": {"exercises": [{"name": "Jo'
        assert json.loads(close_truncated_json(text)) == {
            "id": "w1", "warmup": {"exercises": [{"name": "Jo"}]}
        }

    def test_close_truncated_after_key(self):
        """A dangling key gets a null value."""
        assert json.loads(close_truncated_json('{"id": "w1", "title":')) == {
            "id": "w1", "title": None
        }

    def test_balanced_objects_ignore_braces_in_strings(self):
        """Braces inside strings do not split objects."""
        objects = balanced_objects('a {"x": "}"} b {"y": {"z": 1}}')

        assert objects[0] == '{"x": "}"}'
        assert objects[1] == '{"y": {"z": 1}}'
        assert objects[2] == '{"z": 1}'

    def test_strip_conversational_text(self):
        """Chatty prefixes, fences and sign-offs are removed."""
        text = 'Sure! Here\'s your workout:\n```json\n{"a": 1}\n```\nEnjoy your workout!'
        assert strip_conversational_text(text) == '{"a": 1}'

    def test_detect_truncation(self):
        """Responses not ending with a brace are flagged."""
        assert detect_truncation('{"a": 1}') is None
        assert detect_truncation('```json\n{"a": 1}\n```\n') is None
        assert detect_truncation('{"a": {"b": 1}, "c": [') == 13
        assert detect_truncation("no json at all") == -1

    def test_extract_exercise_lines(self):
        """Lines with a number and a movement keyword become names."""
        text = "Intro line\n- 10 Push-ups\n2. 20 squats\nRest 30 seconds\n"
        assert extract_exercise_lines(text) == ["10 Push-ups", "20 squats"]


class TestSynthesis:
    """Tests for the last-resort workout synthesis."""

    def test_three_phases_from_prose(self):
        """Synthesized workouts always have three non-empty phases."""
        workout = synthesize_workout("Do 10 push ups\nThen 20 squats\nFinish with 30 jumping jacks")

        for key in ("warmup", "mainWorkout", "cooldown"):
            assert workout[key]["exercises"]
        names = [ex["name"] for ex in workout["mainWorkout"]["exercises"]]
        assert names == ["Do 10 push ups", "Then 20 squats", "Finish with 30 jumping jacks"]
        assert all(ex["duration"] == 400 for ex in workout["mainWorkout"]["exercises"])

    def test_defaults_without_exercises(self):
        """Text without exercises still yields a main phase."""
        workout = synthesize_workout("I cannot help with that.")

        assert workout["mainWorkout"]["exercises"][0]["name"] == "Bodyweight Circuit"
        assert workout["title"] == "AI Generated Workout"
        assert workout["confidence"] == 0.5
        assert workout["id"].startswith("fallback_")

    def test_long_description_is_truncated(self):
        """Descriptions preview the first 200 characters."""
        workout = synthesize_workout("x" * 500)
        assert workout["description"] == "x" * 200 + "..."

    def test_empty_text(self):
        """Empty input uses a generic description."""
        workout = synthesize_workout("")
        assert workout["description"] == "Workout generated with fallback structure"


class TestResponseParser:
    """Tests for the ordered strategy chain."""

    def test_direct_json(self, parser, sample_workout_response):
        """Plain JSON parses directly with no issues."""
        result = parser.parse(json.dumps(sample_workout_response))

        assert result.success is True
        assert result.strategyUsed == ParseStrategy.DIRECT
        assert result.data["title"] == "Full Body Express"
        assert result.issues == []
        assert result.metrics.candidateScore == 90

    def test_dict_input(self, parser, sample_workout_response):
        """Already-decoded objects are accepted as-is."""
        result = parser.parse(sample_workout_response)

        assert result.strategyUsed == ParseStrategy.DIRECT
        assert result.data == sample_workout_response

    def test_dict_input_low_score(self, parser):
        """Decoded objects with few workout fields are flagged but kept."""
        result = parser.parse({"title": "Only a title"})

        assert result.strategyUsed == ParseStrategy.DIRECT
        assert any("few workout fields" in issue for issue in result.issues)

    def test_fenced_json(self, parser, sample_workout_response):
        """A ```json block inside prose is extracted."""
        text = f"Here's your workout:\n```json\n{json.dumps(sample_workout_response, indent=2)}\n```"
        result = parser.parse(text)

        assert result.strategyUsed == ParseStrategy.FENCED_JSON
        assert result.data["id"] == "wk_20_full_body"
        assert "Strategy direct failed" in result.issues

    def test_fenced_block_without_language(self, parser, sample_workout_response):
        """An untagged fenced block is extracted."""
        text = f"```\n{json.dumps(sample_workout_response)}\n```"
        result = parser.parse(text)

        assert result.strategyUsed == ParseStrategy.FENCED_BLOCK
        assert result.data["title"] == "Full Body Express"

    def test_json_embedded_in_prose(self, parser, sample_workout_response):
        """Unfenced JSON inside prose is found by brace matching."""
        text = f"I built this plan {json.dumps(sample_workout_response)} hope it helps"
        result = parser.parse(text)

        assert result.strategyUsed == ParseStrategy.BEST_CANDIDATE
        assert result.data["id"] == "wk_20_full_body"

    def test_trailing_comma_repaired(self, parser):
        """Slightly invalid JSON is repaired."""
        text = '{"id": "a", "title": "b", "warmup": {}, "mainWorkout": {},}'
        result = parser.parse(text)

        assert result.data["id"] == "a"
        assert result.metrics.candidateScore == 60

    def test_truncated_response(self, parser):
        """A cut-off response is closed and parsed."""
        text = (
            'Sure! {"id": "w1", "title": "Cut Short", "warmup": {"name": "Warm-up", '
            '"duration": 120, "exercises": [{"name": "Jog"'
        )
        result = parser.parse(text)

        assert result.strategyUsed == ParseStrategy.CLEANUP
        assert result.data["warmup"]["exercises"] == [{"name": "Jog"}]
        assert result.metrics.truncationPoint == -1
        assert any("truncated" in issue for issue in result.issues)

    def test_wrapped_workout(self, parser, sample_workout_response):
        """A workout nested under a wrapper key is unwrapped."""
        result = parser.parse(json.dumps({"workout": sample_workout_response}))

        assert result.strategyUsed == ParseStrategy.DIRECT
        assert result.data["id"] == "wk_20_full_body"

    def test_list_response(self, parser, sample_workout_response):
        """The first object of a JSON array is used."""
        result = parser.parse(json.dumps([sample_workout_response]))
        assert result.data["id"] == "wk_20_full_body"

    def test_low_confidence_candidate_accepted(self, parser):
        """A weak candidate is kept when nothing better is found."""
        result = parser.parse('{"title": "Just a title"}')

        assert result.strategyUsed == ParseStrategy.DIRECT
        assert result.data == {"title": "Just a title"}
        assert "Accepted low-confidence candidate from direct" in result.issues

    def test_prose_is_synthesized(self, parser):
        """Free text falls through to synthesis."""
        result = parser.parse("Try this:\n10 push ups\n20 squats\nRest when needed.")

        assert result.success is True
        assert result.strategyUsed == ParseStrategy.SYNTHESIS
        for key in ("warmup", "mainWorkout", "cooldown"):
            assert result.data[key]["exercises"]
        assert "Strategy cleanup failed" in result.issues

    def test_empty_object_is_synthesized(self, parser):
        """An object without any workout field is not accepted."""
        result = parser.parse("{}")
        assert result.strategyUsed == ParseStrategy.SYNTHESIS

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_empty_response(self, parser, raw):
        """Empty responses never raise."""
        result = parser.parse(raw)

        assert result.success is True
        assert result.strategyUsed == ParseStrategy.SYNTHESIS
        assert "Empty response" in result.issues

    def test_metrics(self, parser):
        """Metrics record length and timing."""
        text = '{"id": "a", "title": "b", "warmup": {}}'
        result = parser.parse(text)

        assert result.metrics.contentLength == len(text)
        assert result.metrics.processingTimeMs >= 0
        assert result.metrics.truncationPoint is None

    def test_custom_threshold(self):
        """A lower threshold accepts weaker candidates immediately."""
        result = ResponseParser(min_candidate_score=10).parse('{"title": "Just a title"}')

        assert result.strategyUsed == ParseStrategy.DIRECT
        assert result.issues == []
