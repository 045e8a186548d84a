from fastapi import APIRouter, Depends, HTTPException

from backend.api.errors import calculation_error_response, error_response
from backend.core.logging import get_logger
from backend.risk.calculator import FailureKind, PositionCalculator
from backend.risk.formatting import format_results
from backend.risk.schemas import (
    CalculationResponse,
    CalculatorInputsModel,
    CalculatorStateResponse,
    ErrorResponse,
    InputUpdateRequest,
)

router = APIRouter(prefix="/api", tags=["calculator"])

_calculator: PositionCalculator | None = None
logger = get_logger(__name__)


def configure_calculator(calculator: PositionCalculator) -> None:
    global _calculator
    _calculator = calculator


def get_calculator() -> PositionCalculator:
    if _calculator is None:
        raise HTTPException(status_code=500, detail="Calculator not configured")
    return _calculator


def _state(calculator: PositionCalculator) -> CalculatorStateResponse:
    results = calculator.get_results()
    return CalculatorStateResponse(
        inputs=CalculatorInputsModel(**calculator.inputs.to_dict()),
        results=results.to_dict() if results is not None else None,
    )


def _run(calculator: PositionCalculator):
    outcome = calculator.calculate()
    if not outcome.success or outcome.results is None:
        return calculation_error_response(outcome.errors, validation=outcome.failure_kind is FailureKind.VALIDATION)
    return CalculationResponse(
        results=outcome.results.to_dict(),
        display=format_results(outcome.results),
        warnings=outcome.warnings,
    )


@router.post(
    "/calculate",
    response_model=CalculationResponse,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def calculate_once(request: CalculatorInputsModel, calculator: PositionCalculator = Depends(get_calculator)):
    """Size a position from a full input set without touching the shared calculator."""
    scratch = PositionCalculator(
        long_liquidation_factor=calculator.long_liquidation_factor,
        short_liquidation_factor=calculator.short_liquidation_factor,
    )
    try:
        scratch.update_inputs(request.model_dump())
        return _run(scratch)
    except Exception:
        logger.exception("calculate_request_failed", extra={"event": "calculate_request_failed"})
        return error_response(status_code=500, code="unexpected_error", detail="Unexpected error. Check server logs.")


@router.get("/calculator", response_model=CalculatorStateResponse)
async def calculator_state(calculator: PositionCalculator = Depends(get_calculator)):
    """Return current inputs and the last successful results."""
    return _state(calculator)


@router.patch(
    "/calculator/inputs",
    response_model=CalculatorStateResponse,
    responses={400: {"model": ErrorResponse}},
)
async def update_inputs(request: InputUpdateRequest, calculator: PositionCalculator = Depends(get_calculator)):
    """Merge the provided fields into the calculator inputs; omitted fields are kept."""
    try:
        calculator.update_inputs(request.model_dump(exclude_none=True))
    except ValueError as exc:
        return error_response(status_code=400, code="validation_error", detail=str(exc))
    return _state(calculator)


@router.post(
    "/calculator/calculate",
    response_model=CalculationResponse,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def calculate_current(calculator: PositionCalculator = Depends(get_calculator)):
    """Compute results from the calculator's current inputs."""
    try:
        return _run(calculator)
    except Exception:
        logger.exception("calculate_request_failed", extra={"event": "calculate_request_failed"})
        return error_response(status_code=500, code="unexpected_error", detail="Unexpected error. Check server logs.")
