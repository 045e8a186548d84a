from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from backend.core.logging import get_logger
from backend.risk.formatting import format_number

logger = get_logger(__name__)


LONG_LIQUIDATION_FACTOR = 0.9
SHORT_LIQUIDATION_FACTOR = 0.8

INPUT_FIELDS: Tuple[str, ...] = (
    "total_funds",
    "r_value",
    "profit_loss_ratio",
    "lot_definition",
    "nominal_leverage",
    "open_price",
)

RESULT_FIELDS: Tuple[str, ...] = (
    "open_margin",
    "actual_leverage",
    "open_quantity",
    "long_liquidation_space",
    "long_profit_space",
    "long_loss_space",
    "long_profit_price",
    "long_loss_price",
    "long_profit_amount",
    "long_loss_amount",
    "short_liquidation_space",
    "short_profit_space",
    "short_loss_space",
    "short_profit_price",
    "short_loss_price",
    "short_profit_amount",
    "short_loss_amount",
)


class CalculationError(Exception):
    """Base error for calculator failures."""


class ValidationError(CalculationError):
    """Raised when one or more input rules are violated."""

    def __init__(self, errors: List[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class ComputationError(CalculationError):
    """Raised when the formula set cannot be evaluated."""


class FailureKind(str, Enum):
    VALIDATION = "validation"
    COMPUTATION = "computation"


@dataclass
class CalculatorInputs:
    total_funds: float = 0.0
    r_value: float = 0.0
    profit_loss_ratio: float = 0.0
    lot_definition: float = 0.0
    nominal_leverage: float = 0.0
    open_price: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class InputUpdate:
    """Partial input change; None leaves the current value in place."""

    total_funds: Optional[float] = None
    r_value: Optional[float] = None
    profit_loss_ratio: Optional[float] = None
    lot_definition: Optional[float] = None
    nominal_leverage: Optional[float] = None
    open_price: Optional[float] = None

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "InputUpdate":
        unknown = sorted(set(values) - set(INPUT_FIELDS))
        if unknown:
            raise ValueError(f"Unknown calculator inputs: {', '.join(unknown)}")
        return cls(**{key: (None if value is None else float(value)) for key, value in values.items()})

    def changes(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass(frozen=True)
class PositionPlan:
    open_margin: float
    actual_leverage: float
    open_quantity: float
    long_liquidation_space: float
    long_profit_space: float
    long_loss_space: float
    long_profit_price: float
    long_loss_price: float
    long_profit_amount: float
    long_loss_amount: float
    short_liquidation_space: float
    short_profit_space: float
    short_loss_space: float
    short_profit_price: float
    short_loss_price: float
    short_profit_amount: float
    short_loss_amount: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str]


@dataclass
class CalculationOutcome:
    success: bool
    results: Optional[PositionPlan] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    failure_kind: Optional[FailureKind] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success}
        if self.success and self.results is not None:
            payload["results"] = self.results.to_dict()
        else:
            payload["errors"] = list(self.errors)
        if self.warnings:
            payload["warnings"] = list(self.warnings)
        return payload


def _positive(value: float) -> bool:
    # NaN compares False here and is rejected with the rest
    return value > 0


def validate_inputs(inputs: CalculatorInputs) -> List[str]:
    """Return every violated input rule, in field order."""
    errors: List[str] = []
    if not _positive(inputs.total_funds):
        errors.append("Total funds must be greater than 0")
    if not (_positive(inputs.r_value) and inputs.r_value <= 100):
        errors.append("R value must be between 0 and 100")
    if not _positive(inputs.profit_loss_ratio):
        errors.append("Profit/loss ratio must be greater than 0")
    if not _positive(inputs.lot_definition):
        errors.append("Lot definition must be greater than 0")
    if not _positive(inputs.nominal_leverage):
        errors.append("Nominal leverage must be greater than 0")
    if not _positive(inputs.open_price):
        errors.append("Open price must be greater than 0")
    return errors


def _divide(numerator: float, denominator: float) -> float:
    """Float division that yields inf/nan on a zero denominator instead of raising."""
    try:
        return numerator / denominator
    except ZeroDivisionError:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)


def compute_plan(
    inputs: CalculatorInputs,
    *,
    long_liquidation_factor: float = LONG_LIQUIDATION_FACTOR,
    short_liquidation_factor: float = SHORT_LIQUIDATION_FACTOR,
) -> Tuple[PositionPlan, List[str]]:
    """
    Evaluate the sizing formulas.

    Returns the rounded plan and the names of fields whose raw value was not
    finite (those are reported as 0). A denominator that underflows to zero
    gives inf/nan rather than an error. Invalid inputs raise ValidationError;
    any other fault while evaluating raises ComputationError.
    """
    errors = validate_inputs(inputs)
    if errors:
        raise ValidationError(errors)

    funds = inputs.total_funds
    price = inputs.open_price
    lot = inputs.lot_definition
    try:
        open_margin = funds * _divide(inputs.r_value, 100)
        actual_leverage = _divide(open_margin * inputs.nominal_leverage, funds)
        open_quantity = _divide(open_margin * inputs.nominal_leverage, price * lot)

        profit_space = _divide(open_margin * inputs.profit_loss_ratio, open_quantity * lot)
        loss_space = _divide(open_margin, open_quantity * lot)
        profit_amount = open_quantity * profit_space * lot
        loss_amount = open_quantity * loss_space * lot
        inverse_leverage = _divide(1, actual_leverage)

        raw = {
            "open_margin": open_margin,
            "actual_leverage": actual_leverage,
            "open_quantity": open_quantity,
            "long_liquidation_space": (price - (price * (1 - inverse_leverage))) * long_liquidation_factor,
            "long_profit_space": profit_space,
            "long_loss_space": loss_space,
            "long_profit_price": price + profit_space,
            "long_loss_price": price - loss_space,
            "long_profit_amount": profit_amount,
            "long_loss_amount": loss_amount,
            "short_liquidation_space": price * inverse_leverage * short_liquidation_factor,
            "short_profit_space": profit_space,
            "short_loss_space": loss_space,
            "short_profit_price": price - profit_space,
            "short_loss_price": price + loss_space,
            "short_profit_amount": profit_amount,
            "short_loss_amount": loss_amount,
        }
        non_finite = [name for name in RESULT_FIELDS if not math.isfinite(raw[name])]
    except (ArithmeticError, TypeError, ValueError) as exc:
        raise ComputationError(str(exc)) from exc

    plan = PositionPlan(**{name: format_number(raw[name], 2) for name in RESULT_FIELDS})
    return plan, non_finite


class PositionCalculator:
    """Holds the six sizing inputs and the last successful plan."""

    def __init__(
        self,
        *,
        long_liquidation_factor: float = LONG_LIQUIDATION_FACTOR,
        short_liquidation_factor: float = SHORT_LIQUIDATION_FACTOR,
    ) -> None:
        self.long_liquidation_factor = long_liquidation_factor
        self.short_liquidation_factor = short_liquidation_factor
        self.inputs = CalculatorInputs()
        self.results: Optional[PositionPlan] = None

    def update_inputs(self, update: Union[InputUpdate, Mapping[str, Any]]) -> CalculatorInputs:
        if not isinstance(update, InputUpdate):
            update = InputUpdate.from_mapping(update)
        changes = update.changes()
        if changes:
            self.inputs = replace(self.inputs, **changes)
        return self.inputs

    def validate_inputs(self) -> ValidationResult:
        errors = validate_inputs(self.inputs)
        return ValidationResult(is_valid=not errors, errors=errors)

    def calculate(self) -> CalculationOutcome:
        validation = self.validate_inputs()
        if not validation.is_valid:
            logger.info(
                "calculation_rejected",
                extra={"event": "calculation_rejected", "errors": validation.errors},
            )
            return CalculationOutcome(success=False, errors=validation.errors, failure_kind=FailureKind.VALIDATION)

        try:
            plan, non_finite = compute_plan(
                self.inputs,
                long_liquidation_factor=self.long_liquidation_factor,
                short_liquidation_factor=self.short_liquidation_factor,
            )
        except Exception as exc:
            logger.exception(
                "calculation_failed",
                extra={"event": "calculation_failed", "inputs": self.inputs.to_dict()},
            )
            return CalculationOutcome(success=False, errors=[f"Calculation failed: {exc}"], failure_kind=FailureKind.COMPUTATION)

        warnings: List[str] = []
        if non_finite:
            logger.warning(
                "calculation_non_finite",
                extra={"event": "calculation_non_finite", "fields": non_finite, "inputs": self.inputs.to_dict()},
            )
            warnings = [f"{name} is not representable and is shown as 0" for name in non_finite]

        self.results = plan
        logger.debug("calculation_completed", extra={"event": "calculation_completed"})
        return CalculationOutcome(success=True, results=plan, warnings=warnings)

    def get_results(self) -> Optional[PositionPlan]:
        return self.results

    def reset(self) -> None:
        self.inputs = CalculatorInputs()
        self.results = None
