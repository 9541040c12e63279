from __future__ import annotations

import numpy as np
import pytest

from practice_sim.metrics import compute_derived
from practice_sim.optimize import compare_payment_policies


def test_four_reference_scenarios(base_plan):
    out = compare_payment_policies(base_plan, cash_pct=10, delay=3, factoring=False)
    assert [s["key"] for s in out["scenarios"]] == ["worst", "cash_3m", "cash_1m", "factoring"]
    buffers = [s["buffer"] for s in out["scenarios"]]
    assert buffers[0] <= buffers[1] <= buffers[2]
    assert out["buffer_worst"] == buffers[0]
    assert out["buffer_factoring"] == buffers[3]


def test_current_policy_matches_derived_scenario(base_plan):
    out = compare_payment_policies(base_plan, cash_pct=10, delay=3, factoring=False)
    np.testing.assert_allclose(out["current_cashflow"], compute_derived(base_plan).cash_delay_3m)
    assert out["buffer_saved"] == pytest.approx(abs(out["buffer_worst"]) - abs(out["buffer_current"]))
    assert out["factoring_cost_annual"] == 0.0


def test_factoring_policy_cost_and_cashflow(base_plan):
    out = compare_payment_policies(base_plan, cash_pct=20, delay=3, factoring=True)
    np.testing.assert_allclose(out["current_cashflow"], out["scenarios"][3]["cashflow"])
    assert out["factoring_cost_annual"] == pytest.approx(base_plan.revenue[24:36].sum() * 0.8 * 0.015)
    assert out["verdict"] == "green"


@pytest.mark.parametrize(
    "cash_pct, delay, factoring, expected_index, expected_verdict",
    [
        (0, 3, False, 0, "red"),
        (10, 3, False, 1, "orange"),
        (10, 1, False, 2, "orange"),
        (0, 1, False, 2, "orange"),
        (10, 0, True, 3, "green"),
        (10, 0, False, -1, "orange"),
    ],
)
def test_matching_scenario_and_verdict(base_plan, cash_pct, delay, factoring, expected_index, expected_verdict):
    out = compare_payment_policies(base_plan, cash_pct=cash_pct, delay=delay, factoring=factoring)
    assert out["matching_scenario"] == expected_index
    assert out["verdict"] == expected_verdict
