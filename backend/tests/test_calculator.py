import math
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.risk.calculator import (  # noqa: E402
    RESULT_FIELDS,
    CalculatorInputs,
    ComputationError,
    FailureKind,
    InputUpdate,
    PositionCalculator,
    PositionPlan,
    ValidationError,
    _divide,
    compute_plan,
)


def sample_inputs():
    return {
        "total_funds": 10000,
        "r_value": 2,
        "profit_loss_ratio": 2,
        "lot_definition": 1,
        "nominal_leverage": 10,
        "open_price": 100,
    }


def build_calculator(**overrides) -> PositionCalculator:
    calc = PositionCalculator()
    values = sample_inputs()
    values.update(overrides)
    calc.update_inputs(values)
    return calc


def test_reference_example():
    outcome = build_calculator().calculate()
    assert outcome.success is True
    plan = outcome.results
    assert isinstance(plan, PositionPlan)
    assert math.isclose(plan.open_margin, 200.0)
    assert math.isclose(plan.actual_leverage, 0.2)  # literal formula: r/100 * leverage
    assert math.isclose(plan.open_quantity, 20.0)
    assert math.isclose(plan.long_profit_space, 20.0)
    assert math.isclose(plan.long_loss_space, 10.0)
    assert math.isclose(plan.long_profit_price, 120.0)
    assert math.isclose(plan.long_loss_price, 90.0)
    assert math.isclose(plan.long_profit_amount, 400.0)
    assert math.isclose(plan.long_loss_amount, 200.0)
    # (100 - 100*(1 - 1/0.2)) * 0.9
    assert math.isclose(plan.long_liquidation_space, 450.0)
    # 100 * (1/0.2) * 0.8
    assert math.isclose(plan.short_liquidation_space, 400.0)
    assert math.isclose(plan.short_profit_price, 80.0)
    assert math.isclose(plan.short_loss_price, 110.0)
    assert math.isclose(plan.short_profit_amount, 400.0)
    assert math.isclose(plan.short_loss_amount, 200.0)
    assert outcome.warnings == []


def test_valid_inputs_give_seventeen_finite_fields():
    for overrides in (
        {},
        {"r_value": 100, "nominal_leverage": 125},
        {"total_funds": 523.17, "r_value": 0.5, "open_price": 0.00042, "lot_definition": 1000},
        {"profit_loss_ratio": 3.5, "open_price": 64250.5, "lot_definition": 0.01},
    ):
        outcome = build_calculator(**overrides).calculate()
        assert outcome.success is True
        results = outcome.to_dict()["results"]
        assert set(results) == set(RESULT_FIELDS)
        assert len(results) == 17
        assert all(math.isfinite(value) for value in results.values())


def test_results_are_rounded_to_two_decimals():
    outcome = build_calculator(total_funds=1234.567, r_value=3.3, open_price=17.3).calculate()
    for value in outcome.results.to_dict().values():
        assert math.isclose(value, round(value, 2), abs_tol=1e-9)


def test_calculate_is_idempotent():
    calc = build_calculator(total_funds=7777, r_value=1.7, open_price=31.9)
    first = calc.calculate()
    second = calc.calculate()
    assert first.results == second.results


def test_validation_collects_every_error():
    calc = PositionCalculator()
    validation = calc.validate_inputs()
    assert validation.is_valid is False
    assert validation.errors == [
        "Total funds must be greater than 0",
        "R value must be between 0 and 100",
        "Profit/loss ratio must be greater than 0",
        "Lot definition must be greater than 0",
        "Nominal leverage must be greater than 0",
        "Open price must be greater than 0",
    ]


def test_validation_reports_only_violated_rules():
    calc = build_calculator(r_value=150, open_price=-1)
    validation = calc.validate_inputs()
    assert validation.errors == [
        "R value must be between 0 and 100",
        "Open price must be greater than 0",
    ]


def test_r_value_upper_bound_inclusive():
    assert build_calculator(r_value=100).validate_inputs().is_valid is True
    assert build_calculator(r_value=100.01).validate_inputs().is_valid is False


def test_nan_input_rejected():
    calc = build_calculator(total_funds=float("nan"))
    assert calc.validate_inputs().errors == ["Total funds must be greater than 0"]


def test_failed_validation_keeps_previous_results():
    calc = build_calculator()
    first = calc.calculate()
    calc.update_inputs({"open_price": 0})
    outcome = calc.calculate()
    assert outcome.success is False
    assert outcome.failure_kind is FailureKind.VALIDATION
    assert outcome.to_dict() == {"success": False, "errors": ["Open price must be greater than 0"]}
    assert calc.get_results() == first.results


def test_successful_calculation_overwrites_results():
    calc = build_calculator()
    calc.calculate()
    calc.update_inputs({"open_price": 50})
    outcome = calc.calculate()
    assert calc.get_results() is outcome.results
    assert math.isclose(calc.get_results().open_quantity, 40.0)


def test_partial_update_keeps_other_fields():
    calc = build_calculator()
    calc.update_inputs(InputUpdate(open_price=250))
    assert calc.inputs.open_price == 250
    assert calc.inputs.total_funds == 10000
    calc.update_inputs({"r_value": None})
    assert calc.inputs.r_value == 2


def test_update_rejects_unknown_field():
    calc = PositionCalculator()
    with pytest.raises(ValueError):
        calc.update_inputs({"stop_price": 10})


def test_update_does_not_validate():
    calc = PositionCalculator()
    calc.update_inputs({"total_funds": -5, "r_value": 500})
    assert calc.inputs.total_funds == -5
    assert calc.inputs.r_value == 500


def test_reset_clears_inputs_and_results():
    calc = build_calculator()
    calc.calculate()
    calc.reset()
    assert calc.inputs == CalculatorInputs()
    assert calc.get_results() is None
    outcome = calc.calculate()
    assert outcome.success is False
    assert len(outcome.errors) == 6


def test_liquidation_factors_are_configurable():
    calc = PositionCalculator(long_liquidation_factor=1.0, short_liquidation_factor=1.0)
    calc.update_inputs(sample_inputs())
    plan = calc.calculate().results
    assert math.isclose(plan.long_liquidation_space, 500.0)
    assert math.isclose(plan.short_liquidation_space, 500.0)


def test_non_finite_results_reported_as_zero_with_warning():
    calc = build_calculator(total_funds=1e308, r_value=100, profit_loss_ratio=1)
    outcome = calc.calculate()
    assert outcome.success is True
    assert outcome.results.actual_leverage == 0
    assert outcome.results.open_quantity == 0
    joined = " ".join(outcome.warnings)
    assert "actual_leverage" in joined
    assert "open_quantity" in joined
    assert outcome.to_dict()["warnings"] == outcome.warnings


def test_underflowed_leverage_still_succeeds_with_warnings():
    calc = build_calculator(total_funds=1, r_value=1e-200, profit_loss_ratio=1, lot_definition=1, nominal_leverage=1e-200, open_price=1)
    assert calc.validate_inputs().is_valid is True
    outcome = calc.calculate()
    assert outcome.success is True
    results = outcome.to_dict()["results"]
    assert len(results) == 17
    assert all(math.isfinite(value) for value in results.values())
    assert results["actual_leverage"] == 0
    assert results["long_liquidation_space"] == 0
    assert results["short_liquidation_space"] == 0
    joined = " ".join(outcome.warnings)
    assert "long_liquidation_space" in joined
    assert "long_profit_space" in joined
    assert calc.get_results() is outcome.results


def test_underflowed_quantity_still_succeeds_with_warnings():
    # open_quantity underflows to 0, so the space formulas divide by zero
    calc = build_calculator(total_funds=1e-300, r_value=1e-10, nominal_leverage=1, open_price=1e10, lot_definition=1e10)
    outcome = calc.calculate()
    assert outcome.success is True
    assert outcome.results.open_quantity == 0
    assert outcome.results.long_profit_price == 0
    assert outcome.results.short_loss_amount == 0
    joined = " ".join(outcome.warnings)
    assert "long_profit_price" in joined
    assert "short_loss_amount" in joined


def test_divide_follows_float_semantics_on_zero():
    assert _divide(6, 3) == 2
    assert _divide(1, 0.0) == math.inf
    assert _divide(-1, 0.0) == -math.inf
    assert _divide(1, -0.0) == -math.inf
    assert math.isnan(_divide(0, 0.0))


def test_non_arithmetic_fault_becomes_single_error():
    calc = PositionCalculator(long_liquidation_factor="0.9")  # type: ignore[arg-type]
    calc.update_inputs(sample_inputs())
    outcome = calc.calculate()
    assert outcome.success is False
    assert outcome.failure_kind is FailureKind.COMPUTATION
    assert len(outcome.errors) == 1
    assert outcome.errors[0].startswith("Calculation failed: ")
    assert calc.get_results() is None


def test_compute_plan_raises_computation_error():
    with pytest.raises(ComputationError):
        compute_plan(CalculatorInputs(**sample_inputs()), short_liquidation_factor=None)  # type: ignore[arg-type]


def test_compute_plan_raises_validation_error_with_every_message():
    with pytest.raises(ValidationError) as excinfo:
        compute_plan(CalculatorInputs(total_funds=100, r_value=101))
    assert excinfo.value.errors == [
        "R value must be between 0 and 100",
        "Profit/loss ratio must be greater than 0",
        "Lot definition must be greater than 0",
        "Nominal leverage must be greater than 0",
        "Open price must be greater than 0",
    ]
