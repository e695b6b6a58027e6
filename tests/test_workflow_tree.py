"""Tests for step-tree parsing and traversal."""

import pytest
from uuid import uuid4

from app.core.exceptions import InvalidWorkflowDefinitionError
from app.schemas.workflow import ConditionStep, DelayStep, EmailStep
from app.services.workflow_tree import (
    branch_entry_id,
    dump_steps,
    email_template_ids,
    find_next_step_id,
    find_step,
    first_step_id,
    parse_steps,
)

NESTED = [
    {"id": "start", "type": "START"},
    {
        "id": "c1",
        "type": "CONDITION",
        "field": "leadScore",
        "operator": "greater_than",
        "value": 10,
        "yesSteps": [
            {"id": "y1", "type": "TAG", "action": "add", "tag": "hot"},
            {
                "id": "c2",
                "type": "CONDITION",
                "field": "email",
                "operator": "not_empty",
                "yesSteps": [{"id": "y2", "type": "EMAIL", "templateId": "t"}],
                "noSteps": [],
            },
        ],
        "noSteps": [{"id": "n1", "type": "DELAY", "duration": 1, "unit": "days"}],
    },
    {"id": "end", "type": "ASSIGN", "agentId": "auto"},
]


class TestParse:
    def test_builds_typed_steps(self):
        steps = parse_steps(NESTED)

        assert isinstance(steps[1], ConditionStep)
        assert isinstance(steps[1].no_steps[0], DelayStep)
        assert isinstance(find_step(steps, "y2"), EmailStep)
        assert find_step(steps, "y2").template_id == "t"

    def test_unknown_type_is_invalid(self):
        with pytest.raises(InvalidWorkflowDefinitionError):
            parse_steps([{"id": "x", "type": "SMS"}])

    def test_duplicate_ids_in_nested_branch_are_invalid(self):
        raw = [
            {"id": "a", "type": "START"},
            {
                "id": "c",
                "type": "CONDITION",
                "yesSteps": [{"id": "a", "type": "TAG", "tag": "x"}],
            },
        ]
        with pytest.raises(InvalidWorkflowDefinitionError):
            parse_steps(raw)

    def test_assign_agent_must_be_auto_or_uuid(self):
        with pytest.raises(InvalidWorkflowDefinitionError):
            parse_steps([{"id": "a", "type": "ASSIGN", "agentId": "bob"}])

    def test_dump_keeps_camel_case(self):
        dumped = dump_steps(parse_steps(NESTED))

        assert dumped[1]["yesSteps"][1]["yesSteps"][0]["templateId"] == "t"
        assert "yes_steps" not in dumped[1]

    def test_empty_definition(self):
        assert parse_steps(None) == []
        assert first_step_id([]) is None


class TestTraversal:
    def setup_method(self):
        self.steps = parse_steps(NESTED)

    def test_first_step_is_start(self):
        assert first_step_id(self.steps) == "start"

    def test_first_step_without_start(self):
        steps = parse_steps([{"id": "d", "type": "DELAY"}, {"id": "e", "type": "EMAIL"}])
        assert first_step_id(steps) == "d"

    def test_top_level_sibling(self):
        assert find_next_step_id(self.steps, "start") == "c1"

    def test_last_step_ends_run(self):
        assert find_next_step_id(self.steps, "end") is None

    def test_branch_tail_falls_through_to_condition_successor(self):
        assert find_next_step_id(self.steps, "n1") == "end"

    def test_nested_branch_tail_climbs_two_levels(self):
        assert find_next_step_id(self.steps, "y2") == "end"
        assert find_next_step_id(self.steps, "y1") == "c2"

    def test_branch_entry(self):
        c1 = find_step(self.steps, "c1")
        assert branch_entry_id(self.steps, c1, True) == "y1"
        assert branch_entry_id(self.steps, c1, False) == "n1"

    def test_empty_branch_falls_through(self):
        c2 = find_step(self.steps, "c2")
        assert branch_entry_id(self.steps, c2, False) == "end"

    def test_unknown_step(self):
        assert find_next_step_id(self.steps, "missing") is None
        assert find_step(self.steps, "missing") is None


class TestEmailTemplateIds:
    def test_distinct_ids_across_branches(self):
        welcome, follow_up = uuid4(), uuid4()
        steps = parse_steps(
            [
                {"id": "e1", "type": "EMAIL", "templateId": str(welcome)},
                {
                    "id": "c",
                    "type": "CONDITION",
                    "field": "email",
                    "operator": "not_empty",
                    "yesSteps": [{"id": "e2", "type": "EMAIL", "templateId": str(follow_up)}],
                    "noSteps": [{"id": "e3", "type": "EMAIL", "templateId": str(welcome)}],
                },
                {"id": "e4", "type": "EMAIL"},
            ]
        )

        assert email_template_ids(steps) == [welcome, follow_up]

    def test_non_uuid_template_is_invalid(self):
        steps = parse_steps(NESTED)
        with pytest.raises(InvalidWorkflowDefinitionError, match="y2"):
            email_template_ids(steps)
