"""
Tests for curriculum item references and the status state machine
"""
import pytest

from coursecore.core.item_reference import ContentTier, ItemKind, ItemRef, parse_references, serialize_references
from coursecore.errors import BadRequestError, ErrorCode
from coursecore.state_machines.progress_status import (
    ProgressStatus,
    can_transition,
    coerce_status,
    compute_percentage,
    derive_status,
)


class TestItemRef:

    def test_parse_each_kind(self):
        assert ItemRef.parse("lesson-abc") == ItemRef(ItemKind.LESSON, "abc")
        assert ItemRef.parse("quiz-abc").kind == ItemKind.QUIZ
        assert ItemRef.parse("brandLesson-abc").tier == ContentTier.BRAND
        assert ItemRef.parse("brandQuiz-abc").kind.is_quiz

    def test_id_may_contain_dashes(self):
        ref = ItemRef.parse("lesson-2024-intro")
        assert ref.id == "2024-intro"
        assert str(ref) == "lesson-2024-intro"

    @pytest.mark.parametrize("raw", ["lesson", "video-1", "lesson-", "-1", "", "Lesson-1"])
    def test_malformed_rejected(self, raw):
        with pytest.raises(BadRequestError) as exc_info:
            ItemRef.parse(raw)
        assert exc_info.value.code == ErrorCode.INVALID_REFERENCE
        assert not ItemRef.is_well_formed(raw)

    def test_kind_for_entity(self):
        assert ItemKind.for_entity(ContentTier.GLOBAL, is_quiz=False) == ItemKind.LESSON
        assert ItemKind.for_entity(ContentTier.BRAND, is_quiz=True) == ItemKind.BRAND_QUIZ

    def test_parse_and_serialize_keep_order(self):
        raw = ["quiz-2", "lesson-1", "brandLesson-9"]
        assert serialize_references(parse_references(raw)) == raw


class TestProgressStatus:

    @pytest.mark.parametrize("completed,total,expected", [
        (0, 4, 0), (1, 8, 13), (1, 3, 33), (2, 3, 67), (1, 2, 50), (4, 4, 100), (0, 0, 0),
    ])
    def test_percentage_rounds_half_up(self, completed, total, expected):
        assert compute_percentage(completed, total) == expected

    def test_percentage_clamps(self):
        assert compute_percentage(5, 4) == 100

    def test_derive_status(self):
        assert derive_status(0, 3) == ProgressStatus.NOT_STARTED
        assert derive_status(1, 3, ProgressStatus.NOT_STARTED) == ProgressStatus.IN_PROGRESS
        assert derive_status(3, 3, ProgressStatus.IN_PROGRESS) == ProgressStatus.COMPLETED

    def test_completed_regresses_when_curriculum_grows(self):
        assert derive_status(2, 3, ProgressStatus.COMPLETED) == ProgressStatus.IN_PROGRESS

    def test_never_returns_to_not_started(self):
        assert derive_status(0, 3, ProgressStatus.IN_PROGRESS) == ProgressStatus.IN_PROGRESS
        assert derive_status(0, 3, ProgressStatus.STARTED) == ProgressStatus.IN_PROGRESS

    def test_started_is_never_produced(self):
        produced = {derive_status(k, 4, previous) for k in range(5) for previous in [None, *ProgressStatus]}
        assert ProgressStatus.STARTED not in produced

    def test_transitions(self):
        assert can_transition(ProgressStatus.NOT_STARTED, ProgressStatus.IN_PROGRESS)
        assert can_transition(ProgressStatus.COMPLETED, ProgressStatus.IN_PROGRESS)
        assert not can_transition(ProgressStatus.IN_PROGRESS, ProgressStatus.NOT_STARTED)
        assert can_transition(ProgressStatus.COMPLETED, ProgressStatus.COMPLETED)

    def test_coerce_legacy_values(self):
        assert coerce_status("Started") == ProgressStatus.STARTED
        assert coerce_status("garbage") is None
        assert coerce_status(None) is None
