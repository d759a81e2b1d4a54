"""Tests for condition evaluation."""

from __future__ import annotations

import pytest

from litestar_automations.core.models import Condition, ConditionGroup, ContactSnapshot, ListingSnapshot
from litestar_automations.core.types import ConditionJoin
from litestar_automations.engine.conditions import evaluate, evaluate_condition, resolve_field

CONTACT = ContactSnapshot(id="c1", workspace_id="ws", stage="Warm ", type="BUYER", source="Zillow")
LISTING = ListingSnapshot(id="l1", workspace_id="ws", status="ACTIVE", price=450000.0)


def check(field: str, operator: str, value: object, payload: dict | None = None) -> bool:
    return evaluate_condition(Condition(field=field, operator=operator, value=value), CONTACT, LISTING, payload)


@pytest.mark.unit
class TestResolveField:
    """Tests for the field allowlist."""

    def test_contact_fields(self) -> None:
        assert resolve_field("contact.stage", CONTACT, None) == "Warm "
        assert resolve_field("contact.type", CONTACT, None) == "BUYER"
        assert resolve_field("contact.source", CONTACT, None) == "Zillow"

    def test_listing_fields(self) -> None:
        assert resolve_field("listing.status", None, LISTING) == "ACTIVE"
        assert resolve_field("listing.price", None, LISTING) == 450000.0

    def test_payload_fields(self) -> None:
        assert resolve_field("payload.toStage", None, None, {"toStage": "HOT"}) == "HOT"
        assert resolve_field("payload.missing", None, None, {"toStage": "HOT"}) is None

    @pytest.mark.parametrize(
        "field",
        ["contact.email", "contact.first_name", "contact.__class__", "listing.address", "user.name", "stage"],
    )
    def test_fields_outside_allowlist_are_unresolvable(self, field: str) -> None:
        assert resolve_field(field, CONTACT, LISTING, {"stage": "x"}) is None

    def test_missing_entities_are_unresolvable(self) -> None:
        assert resolve_field("contact.stage", None, LISTING) is None
        assert resolve_field("listing.status", CONTACT, None) is None


@pytest.mark.unit
class TestOperators:
    """Tests for individual operators."""

    def test_equals_is_trimmed_and_case_insensitive(self) -> None:
        assert check("contact.stage", "equals", "warm")
        assert check("contact.stage", "==", "WARM")
        assert not check("contact.stage", "equals", "hot")

    def test_not_equals(self) -> None:
        assert check("contact.stage", "not_equals", "hot")
        assert not check("contact.stage", "!=", "warm")

    def test_numeric_equality(self) -> None:
        assert check("listing.price", "equals", "450000")

    @pytest.mark.parametrize(
        ("operator", "value", "expected"),
        [
            ("gt", 400000, True),
            ("gt", 450000, False),
            ("gte", "450000", True),
            ("lt", 500000, True),
            ("lte", 449999, False),
            (">", "1e5", True),
            ("<=", 450000, True),
        ],
    )
    def test_numeric_comparisons(self, operator: str, value: object, expected: bool) -> None:
        assert check("listing.price", operator, value) is expected

    def test_non_numeric_comparison_is_false(self) -> None:
        assert not check("contact.stage", "gt", 3)
        assert not check("listing.price", "lt", "cheap")

    def test_contains_substring(self) -> None:
        assert check("contact.source", "contains", "zill")
        assert not check("contact.source", "contains", "realtor")
        assert check("contact.source", "not_contains", "realtor")

    def test_contains_list_membership(self) -> None:
        payload = {"tags": ["VIP", "investor"]}
        assert check("payload.tags", "contains", "vip", payload)
        assert not check("payload.tags", "contains", "first-time", payload)

    def test_unknown_operator_falls_back_to_equals(self) -> None:
        assert check("contact.type", "is", "buyer")
        assert not check("contact.type", "matches", "seller")

    @pytest.mark.parametrize("operator", ["equals", "not_equals", "gt", "contains", "not_contains"])
    def test_unresolvable_field_is_false_for_every_operator(self, operator: str) -> None:
        assert not check("contact.email", operator, "anything")


@pytest.mark.unit
class TestEvaluateGroup:
    """Tests for AND/OR groups."""

    def test_or_group(self) -> None:
        group = ConditionGroup(
            join=ConditionJoin.OR,
            conditions=(
                Condition("contact.stage", "equals", "hot"),
                Condition("contact.stage", "equals", "warm"),
            ),
        )
        assert evaluate(group, CONTACT, LISTING)

    def test_and_group(self) -> None:
        group = ConditionGroup(
            conditions=(
                Condition("contact.type", "equals", "buyer"),
                Condition("listing.price", "gte", 500000),
            ),
        )
        assert not evaluate(group, CONTACT, LISTING)

    def test_empty_group_is_false(self) -> None:
        assert not evaluate(ConditionGroup(), CONTACT, LISTING)
        assert not evaluate(ConditionGroup(join=ConditionJoin.OR), CONTACT, LISTING)

    def test_raw_groups_are_normalized(self) -> None:
        raw = {"join": "any", "conditions": [{"field": "contact.stage", "value": "nope"}, {"field": "contact.type", "value": "buyer"}]}
        assert evaluate(raw, CONTACT, LISTING)
        assert evaluate([{"field": "listing.status", "value": "active"}], CONTACT, LISTING)
        assert not evaluate(None, CONTACT, LISTING)

    def test_payload_condition(self) -> None:
        group = ConditionGroup(conditions=(Condition("payload.toStage", "equals", "hot"),))
        assert evaluate(group, None, None, {"toStage": "HOT"})
        assert not evaluate(group, None, None)
