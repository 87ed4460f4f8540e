"""
============================================================================
Project Exposure Desk v1.0.0
Formula Schemas - Pydantic Models for Formula Endpoints
============================================================================

Reliability Level: L4 Supporting
Input Constraints: Token type must be one of the six formula token types
Side Effects: None (pure validation)

Formulas arrive either as token lists or as the stored formula JSON
(object or string). Stored JSON is handed to the lenient parser, so a
corrupt formula becomes an empty one rather than a 422.

============================================================================
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.logic.formula_tokens import OPERATORS, FormulaToken, TokenType


class FormulaTokenModel(BaseModel):
    """One formula token as sent by clients."""

    id: Optional[str] = Field(default=None, description="Token id (generated when absent)")
    type: TokenType
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, v: Any) -> str:
        return "" if v is None else str(v)

    def to_token(self) -> FormulaToken:
        data: Dict[str, Any] = {"type": self.type.value, "value": self.value}
        if self.id:
            data["id"] = self.id
        return FormulaToken.from_dict(data)


class FormulaParseRequest(BaseModel):
    """Stored formula JSON to normalise."""
    formula: Any = Field(default=None, description="Formula object or JSON string")


class FormulaEvaluateRequest(BaseModel):
    """
    Formula to price.

    prices overrides individual reference prices for this call only.
    """
    formula: Any = Field(default=None, description="Formula object or JSON string")
    tokens: Optional[List[FormulaTokenModel]] = None
    prices: Optional[Dict[str, float]] = None


class FormulaExposureRequest(BaseModel):
    """Tokens plus the leg direction and size they are attached to."""
    model_config = ConfigDict(populate_by_name=True)

    tokens: List[FormulaTokenModel] = Field(default_factory=list)
    quantity: float = Field(..., ge=0)
    buy_sell: str = Field(default="buy", alias="buySell")

    @field_validator("buy_sell")
    @classmethod
    def validate_buy_sell(cls, v: str) -> str:
        value = v.strip().lower()
        if value not in ("buy", "sell"):
            raise ValueError(f"buySell must be 'buy' or 'sell', got: {v}")
        return value

    @field_validator("tokens")
    @classmethod
    def validate_operators(cls, v: List[FormulaTokenModel]) -> List[FormulaTokenModel]:
        for token in v:
            if token.type == TokenType.OPERATOR and token.value not in OPERATORS:
                raise ValueError(f"Invalid operator: {token.value}")
        return v


__all__ = [
    "FormulaTokenModel",
    "FormulaParseRequest",
    "FormulaEvaluateRequest",
    "FormulaExposureRequest",
]
