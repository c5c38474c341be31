from __future__ import annotations

from optometry_reports.aggregate.cumulative import empty_result
from optometry_reports.aggregate.inflight import LatestRequestGate
from optometry_reports.aggregate.periods import Period

JUNE = Period("June", "2025")
JULY = Period("July", "2025")


def test_superseded_result_is_dropped() -> None:
    gate = LatestRequestGate()
    old = gate.begin("kozhikode-matrix", JUNE)
    new = gate.begin("kozhikode-matrix", JULY)

    assert gate.accept(old, empty_result("Kozhikode", "CHC X", JUNE)) is None
    res = empty_result("Kozhikode", "CHC X", JULY)
    assert gate.accept(new, res) is res


def test_result_for_wrong_period_is_dropped() -> None:
    gate = LatestRequestGate()
    ticket = gate.begin("view", JULY)
    assert gate.accept(ticket, empty_result("Kozhikode", "CHC X", JUNE)) is None


def test_views_are_independent() -> None:
    gate = LatestRequestGate()
    a = gate.begin("a", JUNE)
    gate.begin("b", JULY)
    assert gate.is_current(a)


def test_run_returns_current_result() -> None:
    gate = LatestRequestGate()
    res = gate.run("view", JUNE, lambda: empty_result("Kozhikode", "CHC X", JUNE))
    assert res is not None and res.matches(JUNE)
