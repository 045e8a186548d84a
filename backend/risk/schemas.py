from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class CalculatorInputsModel(BaseModel):
    total_funds: float = 0.0
    r_value: float = 0.0
    profit_loss_ratio: float = 0.0
    lot_definition: float = 0.0
    nominal_leverage: float = 0.0
    open_price: float = 0.0


class InputUpdateRequest(BaseModel):
    total_funds: Optional[float] = None
    r_value: Optional[float] = None
    profit_loss_ratio: Optional[float] = None
    lot_definition: Optional[float] = None
    nominal_leverage: Optional[float] = None
    open_price: Optional[float] = None


class PositionPlanModel(BaseModel):
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


class CalculationResponse(BaseModel):
    success: bool = True
    results: PositionPlanModel
    display: Dict[str, str]
    warnings: List[str] = []


class CalculatorStateResponse(BaseModel):
    inputs: CalculatorInputsModel
    results: Optional[PositionPlanModel] = None


class FormValues(BaseModel):
    values: Dict[str, str] = Field(default_factory=dict)


class FormSubmitResponse(BaseModel):
    success: bool
    calculated: bool
    display: Dict[str, str]
    results: Optional[PositionPlanModel] = None
    errors: List[str] = []
    field_errors: Dict[str, str] = {}
    warnings: List[str] = []


class ErrorResponse(BaseModel):
    error: str
    detail: str
    context: Optional[dict] = None
