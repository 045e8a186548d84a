from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from backend.risk.calculator import INPUT_FIELDS, CalculationOutcome, InputUpdate, PositionCalculator
from backend.risk.formatting import format_results, placeholder_results

INVALID_NUMBER_MESSAGE = "Please enter a valid positive number"

_LEADING_NUMBER = re.compile(r"\s*[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


@dataclass
class ParsedForm:
    update: InputUpdate
    field_errors: Dict[str, str] = field(default_factory=dict)

    @property
    def has_valid_input(self) -> bool:
        return bool(self.update.changes())


@dataclass
class FormSubmission:
    parsed: ParsedForm
    outcome: Optional[CalculationOutcome]
    display: Dict[str, str]


def _parse_number(raw: Any) -> Optional[float]:
    """Read the leading number of the text ("100元" -> 100.0); None when there is none."""
    if raw is None:
        return None
    match = _LEADING_NUMBER.match(str(raw))
    if match is None:
        return None
    return float(match.group(0))


def parse_form_values(raw: Mapping[str, Any]) -> ParsedForm:
    """
    Turn the raw form map into an engine update.

    Only values that parse to a number > 0 are applied. Blank fields are
    skipped silently; text with no leading number, or a negative one, gets a
    field error. Trailing text after the number ("100元") is ignored.
    Unknown keys are ignored.
    """
    accepted: Dict[str, float] = {}
    field_errors: Dict[str, str] = {}
    for name in INPUT_FIELDS:
        text = raw.get(name)
        if text is None or str(text).strip() == "":
            continue
        value = _parse_number(text)
        if value is None or value < 0:
            field_errors[name] = INVALID_NUMBER_MESSAGE
            continue
        if value > 0:
            accepted[name] = value
    return ParsedForm(update=InputUpdate(**accepted), field_errors=field_errors)


def submit_form(calculator: PositionCalculator, raw: Mapping[str, Any]) -> FormSubmission:
    """Apply the usable form values to the calculator and compute a display."""
    parsed = parse_form_values(raw)
    if not parsed.has_valid_input:
        return FormSubmission(parsed=parsed, outcome=None, display=placeholder_results())

    calculator.update_inputs(parsed.update)
    outcome = calculator.calculate()
    if outcome.success and outcome.results is not None:
        display = format_results(outcome.results)
    else:
        display = placeholder_results()
    return FormSubmission(parsed=parsed, outcome=outcome, display=display)
