"""Tests for step and condition parsing."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from litestar_automations.core.models import (
    Condition,
    ConditionGroup,
    EmailStep,
    IfStep,
    SmsStep,
    TaskStep,
    UnknownStep,
    WaitStep,
)
from litestar_automations.core.parsing import normalize_condition_group, parse_datetime, parse_step, parse_steps
from litestar_automations.core.types import ConditionJoin, WaitUnit


@pytest.mark.unit
class TestParseSteps:
    """Tests for parsing step lists."""

    def test_non_list_input_yields_no_steps(self) -> None:
        assert parse_steps(None) == []
        assert parse_steps({"type": "SMS"}) == []
        assert parse_steps("SMS") == []

    def test_non_mapping_entries_are_dropped(self) -> None:
        steps = parse_steps([{"type": "SMS", "config": {"text": "hi"}}, "junk", 3, None])
        assert steps == [SmsStep(text="hi")]

    def test_kind_aliases_and_case(self) -> None:
        steps = parse_steps([{"type": "send_sms"}, {"kind": "SEND_EMAIL"}, {"type": "task"}])
        assert [type(step) for step in steps] == [SmsStep, EmailStep, TaskStep]

    def test_unknown_kind(self) -> None:
        step = parse_step({"type": "update_contact_stage", "id": "s9"})
        assert step == UnknownStep(raw_kind="UPDATE_CONTACT_STAGE", id="s9")
        assert step.kind == "UPDATE_CONTACT_STAGE"
        assert parse_step({}).kind == "UNKNOWN"

    def test_long_kind_and_id_are_truncated(self) -> None:
        step = parse_step({"type": "x" * 300, "id": "s" * 300})
        assert step.kind == "X" * 50
        assert step.id == "s" * 255

    def test_config_that_is_not_a_mapping_is_ignored(self) -> None:
        assert parse_step({"type": "SMS", "config": ["text"]}) == SmsStep()


@pytest.mark.unit
class TestParseMessageSteps:
    """Tests for SMS and EMAIL configuration."""

    def test_sms_text_aliases(self) -> None:
        assert parse_step({"type": "SMS", "config": {"body": "Hello"}}).text == "Hello"
        assert parse_step({"type": "SMS", "config": {"message": "Yo", "text": "  "}}).text == "Yo"

    def test_email_fields(self) -> None:
        step = parse_step({"type": "EMAIL", "id": "e1", "config": {"subject": " Hi ", "html": "<p>x</p>"}})
        assert step == EmailStep(subject="Hi", body="<p>x</p>", id="e1")


@pytest.mark.unit
class TestParseTask:
    """Tests for TASK configuration."""

    def test_due_keys_in_order(self) -> None:
        step = parse_step({"type": "TASK", "config": {"title": "x", "dueAt": "garbage", "reminderAt": "2030-01-02T03:04:05"}})
        assert step.due_at == datetime(2030, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_offsets_are_summed(self) -> None:
        step = parse_step(
            {"type": "TASK", "config": {"title": "x", "offsetMinutes": 30, "dueInHours": "2", "offsetDays": 1}}
        )
        assert step.due_offset == timedelta(days=1, hours=2, minutes=30)

    def test_invalid_offsets_are_ignored(self) -> None:
        step = parse_step({"type": "TASK", "config": {"title": "x", "offsetHours": -3, "offsetDays": "soon"}})
        assert step.due_offset is None
        assert step.due_at is None

    def test_offsets_out_of_range_are_ignored(self) -> None:
        assert parse_step({"type": "TASK", "config": {"offsetDays": 1e10}}).due_offset is None
        assert parse_step({"type": "TASK", "config": {"offsetHours": 1e20}}).due_offset is None
        step = parse_step({"type": "TASK", "config": {"offsetHours": 2, "offsetDays": 1e10}})
        assert step.due_offset == timedelta(hours=2)

    def test_dedupe_window(self) -> None:
        assert parse_step({"type": "TASK", "config": {"dedupeWindowMinutes": "45"}}).dedupe_window_minutes == 45
        assert parse_step({"type": "TASK", "config": {"dedupeWindowMinutes": 0}}).dedupe_window_minutes is None

    def test_title_and_notes(self) -> None:
        step = parse_step({"type": "TASK", "config": {"text": "Call back", "notes": " bring comps "}})
        assert step.title == "Call back"
        assert step.notes == "bring comps"


@pytest.mark.unit
class TestParseWait:
    """Tests for WAIT configuration."""

    def test_amount_and_unit(self) -> None:
        assert parse_step({"type": "WAIT", "config": {"amount": "3", "unit": "Weeks"}}) == WaitStep(
            amount=3.0, unit=WaitUnit.WEEKS
        )

    def test_legacy_hours_then_days(self) -> None:
        assert parse_step({"type": "WAIT", "config": {"hours": 5, "days": 2}}) == WaitStep(amount=5.0, unit=WaitUnit.HOURS)
        assert parse_step({"type": "WAIT", "config": {"days": 2}}) == WaitStep(amount=2.0, unit=WaitUnit.DAYS)

    @pytest.mark.parametrize(
        "config",
        [{}, {"amount": 0, "unit": "days"}, {"amount": 2, "unit": "fortnights"}, {"amount": True, "unit": "days"}],
    )
    def test_missing_or_invalid_timing(self, config: dict) -> None:
        assert parse_step({"type": "WAIT", "config": config}) == WaitStep()


@pytest.mark.unit
class TestParseIf:
    """Tests for IF configuration."""

    def test_branches_are_parsed_recursively(self) -> None:
        step = parse_step(
            {
                "type": "IF",
                "config": {"condition": {"field": "contact.stage", "operator": "EQUALS", "value": "hot"}},
                "thenSteps": [{"type": "IF", "thenSteps": [{"type": "SMS"}]}],
                "elseSteps": [{"type": "TASK"}],
            }
        )
        assert isinstance(step, IfStep)
        assert step.condition == ConditionGroup(conditions=(Condition("contact.stage", "equals", "hot"),))
        assert isinstance(step.then_steps[0], IfStep)
        assert isinstance(step.then_steps[0].then_steps[0], SmsStep)
        assert isinstance(step.else_steps[0], TaskStep)

    def test_branches_from_config(self) -> None:
        step = parse_step({"type": "IF", "config": {"then": [{"type": "SMS"}], "else": [{"type": "EMAIL"}]}})
        assert isinstance(step.then_steps[0], SmsStep)
        assert isinstance(step.else_steps[0], EmailStep)

    def test_top_level_condition(self) -> None:
        step = parse_step({"type": "IF", "condition": [{"field": "contact.type", "value": "buyer"}]})
        assert step.condition.conditions == (Condition("contact.type", "equals", "buyer"),)

    def test_missing_condition_is_an_empty_group(self) -> None:
        assert parse_step({"type": "IF"}).condition == ConditionGroup()


@pytest.mark.unit
class TestNormalizeConditionGroup:
    """Tests for condition group normalization."""

    def test_join_values(self) -> None:
        assert normalize_condition_group({"join": "or", "conditions": []}).join == ConditionJoin.OR
        assert normalize_condition_group({"join": "ANY", "conditions": []}).join == ConditionJoin.OR
        assert normalize_condition_group({"join": "whatever", "conditions": []}).join == ConditionJoin.AND

    def test_incomplete_conditions_are_dropped(self) -> None:
        group = normalize_condition_group(
            {
                "conditions": [
                    {"field": "", "value": "x"},
                    {"field": "contact.stage", "value": "  "},
                    {"field": "contact.stage"},
                    "junk",
                    {"field": "contact.stage", "operator": " GT ", "value": 3},
                ]
            }
        )
        assert group.conditions == (Condition("contact.stage", "gt", 3),)

    def test_unparsable_input(self) -> None:
        assert normalize_condition_group("contact.stage == hot") == ConditionGroup()
        assert normalize_condition_group({"conditions": "nope"}) == ConditionGroup()


@pytest.mark.unit
class TestParseDatetime:
    """Tests for timestamp parsing."""

    def test_aware_values_keep_their_offset(self) -> None:
        parsed = parse_datetime("2030-01-01T10:00:00+02:00")
        assert parsed == datetime(2030, 1, 1, 8, tzinfo=timezone.utc)

    def test_invalid_values(self) -> None:
        assert parse_datetime("") is None
        assert parse_datetime("tomorrow") is None
        assert parse_datetime(1700000000) is None
