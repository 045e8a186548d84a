from typing import Any, Dict, List, Optional

from fastapi.responses import JSONResponse


def error_response(
    *,
    status_code: int,
    code: str,
    detail: str,
    context: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """Return a consistent error payload for API responses."""
    payload: Dict[str, Any] = {"error": code, "detail": detail}
    if context:
        payload["context"] = context
    return JSONResponse(status_code=status_code, content=payload)


def calculation_error_response(errors: List[str], *, validation: bool) -> JSONResponse:
    """Map a failed calculation outcome to validation_error (400) or computation_error (422)."""
    if validation:
        return error_response(
            status_code=400,
            code="validation_error",
            detail="; ".join(errors),
            context={"errors": errors},
        )
    return error_response(
        status_code=422,
        code="computation_error",
        detail=errors[0] if errors else "Calculation failed",
        context={"errors": errors},
    )
