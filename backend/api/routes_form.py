from fastapi import APIRouter, Depends, HTTPException

from backend.api.errors import error_response
from backend.api.routes_calculator import get_calculator
from backend.core.form_store import FormStore
from backend.core.logging import get_logger
from backend.risk.calculator import PositionCalculator
from backend.risk.form_inputs import submit_form
from backend.risk.formatting import placeholder_results
from backend.risk.schemas import ErrorResponse, FormSubmitResponse, FormValues

router = APIRouter(prefix="/api", tags=["form"])

FORM_NOT_SAVED_WARNING = "Form values could not be saved; they will not be restored next time."

_store: FormStore | None = None
logger = get_logger(__name__)


def configure_form_store(store: FormStore) -> None:
    global _store
    _store = store


def get_form_store() -> FormStore:
    if _store is None:
        raise HTTPException(status_code=500, detail="Form store not configured")
    return _store


@router.get("/form", response_model=FormValues)
async def load_form(store: FormStore = Depends(get_form_store)):
    """Return the last saved form text."""
    return FormValues(values=store.load())


@router.put("/form", response_model=FormValues, responses={500: {"model": ErrorResponse}})
async def save_form(request: FormValues, store: FormStore = Depends(get_form_store)):
    try:
        return FormValues(values=store.save(request.values))
    except OSError:
        return error_response(status_code=500, code="form_store_failed", detail="Unable to save form values.")


@router.delete("/form", response_model=FormValues)
async def clear_form(store: FormStore = Depends(get_form_store)):
    store.clear()
    return FormValues(values={})


@router.post(
    "/form/submit",
    response_model=FormSubmitResponse,
    responses={500: {"model": ErrorResponse}},
)
async def submit(
    request: FormValues,
    store: FormStore = Depends(get_form_store),
    calculator: PositionCalculator = Depends(get_calculator),
):
    """Save the raw form text, then calculate from whichever values are usable."""
    warnings: list[str] = []
    try:
        store.save(request.values)
    except OSError:
        warnings.append(FORM_NOT_SAVED_WARNING)
    try:
        submission = submit_form(calculator, request.values)
    except Exception:
        logger.exception("form_submit_failed", extra={"event": "form_submit_failed"})
        return error_response(status_code=500, code="unexpected_error", detail="Unexpected error. Check server logs.")

    outcome = submission.outcome
    if outcome is None:
        return FormSubmitResponse(
            success=False,
            calculated=False,
            display=submission.display,
            field_errors=submission.parsed.field_errors,
            warnings=warnings,
        )
    return FormSubmitResponse(
        success=outcome.success,
        calculated=True,
        display=submission.display,
        results=outcome.results.to_dict() if outcome.results is not None else None,
        errors=outcome.errors,
        field_errors=submission.parsed.field_errors,
        warnings=warnings + outcome.warnings,
    )


@router.post("/calculator/reset", response_model=FormSubmitResponse)
async def reset_calculator(
    store: FormStore = Depends(get_form_store),
    calculator: PositionCalculator = Depends(get_calculator),
):
    """Zero every input, drop the results and forget the saved form."""
    calculator.reset()
    store.clear()
    logger.info("calculator_reset", extra={"event": "calculator_reset"})
    return FormSubmitResponse(success=True, calculated=False, display=placeholder_results())
