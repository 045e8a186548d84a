import math
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.risk.calculator import PositionCalculator  # noqa: E402
from backend.risk.form_inputs import INVALID_NUMBER_MESSAGE, parse_form_values, submit_form  # noqa: E402
from backend.risk.formatting import PLACEHOLDER  # noqa: E402


def full_form():
    return {
        "total_funds": "10000",
        "r_value": "2",
        "profit_loss_ratio": "2",
        "lot_definition": "1",
        "nominal_leverage": "10",
        "open_price": " 100 ",
    }


def test_parse_keeps_positive_numbers_only():
    parsed = parse_form_values({"total_funds": "5000", "r_value": "0", "open_price": "", "unknown": "7"})
    assert parsed.update.changes() == {"total_funds": 5000.0}
    assert parsed.field_errors == {}
    assert parsed.has_valid_input is True


def test_parse_flags_garbage_and_negative_values():
    parsed = parse_form_values({"total_funds": "abc", "r_value": "-1", "open_price": "nan"})
    assert parsed.has_valid_input is False
    assert parsed.field_errors == {
        "total_funds": INVALID_NUMBER_MESSAGE,
        "r_value": INVALID_NUMBER_MESSAGE,
        "open_price": INVALID_NUMBER_MESSAGE,
    }


def test_parse_empty_form():
    parsed = parse_form_values({})
    assert parsed.has_valid_input is False
    assert parsed.field_errors == {}


def test_submit_without_usable_values_shows_placeholders():
    calc = PositionCalculator()
    submission = submit_form(calc, {"total_funds": ""})
    assert submission.outcome is None
    assert set(submission.display.values()) == {PLACEHOLDER}
    assert calc.get_results() is None


def test_submit_full_form_calculates():
    calc = PositionCalculator()
    submission = submit_form(calc, full_form())
    assert submission.outcome.success is True
    assert math.isclose(submission.outcome.results.open_quantity, 20.0)
    assert submission.display["open_margin"] == "$ 200.00"


def test_submit_partial_form_reports_validation_errors():
    calc = PositionCalculator()
    submission = submit_form(calc, {"total_funds": "10000", "r_value": "2"})
    assert submission.outcome.success is False
    assert "Open price must be greater than 0" in submission.outcome.errors
    assert set(submission.display.values()) == {PLACEHOLDER}


def test_submit_ignores_invalid_field_and_keeps_previous_value():
    calc = PositionCalculator()
    submit_form(calc, full_form())
    form = full_form()
    form["open_price"] = "-3"
    submission = submit_form(calc, form)
    assert calc.inputs.open_price == 100
    assert submission.outcome.success is True
    assert submission.parsed.field_errors == {"open_price": INVALID_NUMBER_MESSAGE}


def test_parse_reads_leading_number_from_mixed_text():
    parsed = parse_form_values({"total_funds": "100元", "r_value": "2%", "open_price": " 1.5e2 USD", "lot_definition": ".5x"})
    assert parsed.update.changes() == {"total_funds": 100.0, "r_value": 2.0, "open_price": 150.0, "lot_definition": 0.5}
    assert parsed.field_errors == {}


def test_parse_rejects_text_without_leading_number():
    parsed = parse_form_values({"total_funds": "元100", "r_value": "-3x"})
    assert parsed.update.changes() == {}
    assert parsed.field_errors == {"total_funds": INVALID_NUMBER_MESSAGE, "r_value": INVALID_NUMBER_MESSAGE}
