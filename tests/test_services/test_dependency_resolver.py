from __future__ import annotations

from pressroom.models import WorkflowStep
from pressroom.services.dependency_resolver import (
    all_complete,
    dependencies_met,
    resolve_next_step,
    unmet_dependencies,
)
from pressroom.services.matching import match_name


def make_step(name, order, status="pending", deps=()):
    return WorkflowStep(id=name.lower(), name=name, order=order, status=status, dependencies=list(deps))


def test_first_pending_step_by_order_wins():
    steps = [
        make_step("C", 2),
        make_step("A", 0, status="complete"),
        make_step("B", 1),
    ]
    assert resolve_next_step(steps).name == "B"


def test_step_with_incomplete_dependency_is_skipped():
    steps = [
        make_step("A", 0, status="in_progress"),
        make_step("B", 1, deps=["A"]),
        make_step("C", 2),
    ]
    assert resolve_next_step(steps).name == "C"
    assert unmet_dependencies(steps[1], steps) == ["A"]
    assert not dependencies_met(steps[1], steps)


def test_preferred_step_only_when_eligible():
    steps = [
        make_step("A", 0, status="complete"),
        make_step("B", 1, deps=["A"]),
        make_step("X", 2, deps=["A"]),
        make_step("Y", 3, deps=["B"]),
    ]
    assert resolve_next_step(steps, preferred="X").name == "X"
    assert resolve_next_step(steps, preferred="Y").name == "B"
    assert resolve_next_step(steps, preferred="Unknown").name == "B"


def test_nothing_eligible_returns_none():
    steps = [
        make_step("A", 0, status="in_progress"),
        make_step("B", 1, deps=["A"]),
    ]
    assert resolve_next_step(steps) is None
    assert not all_complete(steps)


def test_all_complete():
    steps = [make_step("A", 0, status="complete"), make_step("B", 1, status="complete")]
    assert resolve_next_step(steps) is None
    assert all_complete(steps)


def test_match_name_order_of_preference():
    names = ["Launch Announcement", "Quick Press Release", "Dummy Workflow"]
    assert match_name("Launch Announcement", names) == "Launch Announcement"
    assert match_name("  quick PRESS release ", names) == "Quick Press Release"
    assert match_name("dummy", names) == "Dummy Workflow"
    assert match_name("I'd like the launch announcement workflow", names) == "Launch Announcement"
    assert match_name("something else", names) is None
    assert match_name("", names) is None
    assert match_name(None, names) is None
