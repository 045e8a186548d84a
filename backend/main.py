from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.api.routes_calculator import configure_calculator, router as calculator_router
from backend.api.routes_form import configure_form_store, router as form_router
from backend.core.config import Settings, get_settings
from backend.core.form_store import FormStore
from backend.core.logging import init_logging
from backend.risk.calculator import INPUT_FIELDS, PositionCalculator


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    init_logging(settings.log_level)

    calculator = PositionCalculator(
        long_liquidation_factor=settings.long_liquidation_factor,
        short_liquidation_factor=settings.short_liquidation_factor,
    )
    configure_calculator(calculator)
    configure_form_store(FormStore(settings.resolved_form_store_path(), allowed_keys=INPUT_FIELDS))

    app = FastAPI(
        title="Position & Risk Sizing Calculator",
        version="0.1.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(calculator_router)
    app.include_router(form_router)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("backend.main:app", host=settings.app_host, port=settings.app_port)


if __name__ == "__main__":
    run()
