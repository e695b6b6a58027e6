"""Traversal helpers over a parsed workflow step tree.

Steps are the ``app.schemas.workflow`` models.  Only ``ConditionStep``
has children (``yes_steps`` / ``no_steps``).  The helpers here are pure
and never touch the database.
"""

from typing import Any, Iterator, List, Optional, Sequence, Tuple
from uuid import UUID

from pydantic import ValidationError

from app.core.exceptions import InvalidWorkflowDefinitionError
from app.schemas.workflow import STEP_LIST_ADAPTER, ConditionStep, EmailStep, StartStep


def parse_steps(raw: Any) -> List[Any]:
    """Parse stored JSON into step models and check id uniqueness.

    Raises:
        InvalidWorkflowDefinitionError: If a step fails validation or
            two steps anywhere in the tree share an id.
    """
    try:
        steps = STEP_LIST_ADAPTER.validate_python(raw or [])
    except ValidationError as exc:
        raise InvalidWorkflowDefinitionError(
            f"Invalid workflow steps: {exc.error_count()} error(s)"
        ) from exc
    ensure_unique_ids(steps)
    return steps


def dump_steps(steps: Sequence[Any]) -> List[dict]:
    """Serialise step models back to the stored camelCase JSON."""
    return STEP_LIST_ADAPTER.dump_python(list(steps), by_alias=True, mode="json")


def iter_steps(steps: Sequence[Any]) -> Iterator[Any]:
    """Depth-first walk over every step in the tree."""
    for step in steps:
        yield step
        if isinstance(step, ConditionStep):
            yield from iter_steps(step.yes_steps)
            yield from iter_steps(step.no_steps)


def ensure_unique_ids(steps: Sequence[Any]) -> None:
    seen = set()
    for step in iter_steps(steps):
        if step.id in seen:
            raise InvalidWorkflowDefinitionError(f"Duplicate step id '{step.id}'")
        seen.add(step.id)


def email_template_ids(steps: Sequence[Any]) -> List[UUID]:
    """Distinct template ids referenced by EMAIL steps, in tree order.

    Raises:
        InvalidWorkflowDefinitionError: If a ``templateId`` is not a UUID.
    """
    ids: List[UUID] = []
    for step in iter_steps(steps):
        if not isinstance(step, EmailStep) or not step.template_id:
            continue
        try:
            template_id = UUID(step.template_id)
        except ValueError:
            raise InvalidWorkflowDefinitionError(
                f"Step '{step.id}' has an invalid templateId"
            ) from None
        if template_id not in ids:
            ids.append(template_id)
    return ids


def first_step_id(steps: Sequence[Any]) -> Optional[str]:
    """The top-level START step's id, else the first step's id."""
    for step in steps:
        if isinstance(step, StartStep):
            return step.id
    return steps[0].id if steps else None


def find_step(steps: Sequence[Any], step_id: str) -> Optional[Any]:
    """Locate a step by id anywhere in the tree."""
    for step in iter_steps(steps):
        if step.id == step_id:
            return step
    return None


def _next_after(
    steps: Sequence[Any], step_id: str, fallthrough: Optional[str]
) -> Tuple[bool, Optional[str]]:
    """Search *steps* for *step_id*.

    Returns ``(found, next_id)``.  ``found`` separates "not in this
    subtree" from "found, and the run ends here" (``next_id is None``).
    *fallthrough* is the id that follows this list once it is exhausted:
    the enclosing condition's own next sibling, or ``None`` at top level.
    """
    for index, step in enumerate(steps):
        sibling = steps[index + 1].id if index + 1 < len(steps) else fallthrough
        if step.id == step_id:
            return True, sibling
        if isinstance(step, ConditionStep):
            for branch in (step.yes_steps, step.no_steps):
                found, next_id = _next_after(branch, step_id, sibling)
                if found:
                    return True, next_id
    return False, None


def find_next_step_id(steps: Sequence[Any], step_id: str) -> Optional[str]:
    """Id of the step that logically follows *step_id*, or ``None``.

    The last step of a branch continues with the step after the
    condition that owns the branch.
    """
    _, next_id = _next_after(steps, step_id, None)
    return next_id


def branch_entry_id(
    steps: Sequence[Any], condition: ConditionStep, matched: bool
) -> Optional[str]:
    """First step of the chosen branch, or the condition's own successor.

    An empty branch falls through instead of ending the run.
    """
    branch = condition.yes_steps if matched else condition.no_steps
    if branch:
        return branch[0].id
    return find_next_step_id(steps, condition.id)
