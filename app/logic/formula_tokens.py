"""
============================================================================
Project Exposure Desk v1.0.0
Formula Token Model - Pricing Formula Building Blocks
============================================================================

Reliability Level: L5 Core
Input Constraints: Token sequences from stored formulas or the formula builder
Side Effects: None (pure functions)

TOKEN GRAMMAR
-------------
A pricing formula is an ordered list of tokens evaluated left to right.
The next token type that may be appended depends only on the last token:

    (empty)                               -> instrument | fixedValue | openBracket
    instrument | fixedValue | percentage  -> operator
    closeBracket                          -> operator
    operator                              -> instrument | fixedValue | percentage | openBracket
    openBracket                           -> instrument | fixedValue | percentage | openBracket

A closeBracket may additionally follow a value or another closeBracket
while an openBracket is still unclosed.

ERROR CODES:
    - FRM-001: Token rejected by the formula grammar

============================================================================
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Sequence

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class FormulaErrorCode:
    """Formula-specific error codes for audit logging."""
    INVALID_APPEND = "FRM-001"
    PARSE_FAILURE = "FRM-002"


class FormulaError(Exception):
    """Raised when a token cannot be created or appended."""

    def __init__(self, message: str, error_code: str = FormulaErrorCode.INVALID_APPEND):
        self.error_code = error_code
        self.message = message
        super().__init__(f"[{error_code}] {message}")


# =============================================================================
# Enums
# =============================================================================

class TokenType(str, Enum):
    """Wire names of the formula token kinds."""
    INSTRUMENT = "instrument"
    FIXED_VALUE = "fixedValue"
    PERCENTAGE = "percentage"
    OPERATOR = "operator"
    OPEN_BRACKET = "openBracket"
    CLOSE_BRACKET = "closeBracket"


OPERATORS: FrozenSet[str] = frozenset({"+", "-", "*", "/"})

VALUE_TYPES: FrozenSet[TokenType] = frozenset({
    TokenType.INSTRUMENT,
    TokenType.FIXED_VALUE,
    TokenType.PERCENTAGE,
})

# Allowed next token types keyed by the type of the last token.
# None is the empty formula.
ALLOWED_NEXT: Dict[Optional[TokenType], FrozenSet[TokenType]] = {
    None: frozenset({
        TokenType.INSTRUMENT,
        TokenType.FIXED_VALUE,
        TokenType.OPEN_BRACKET,
    }),
    TokenType.INSTRUMENT: frozenset({TokenType.OPERATOR}),
    TokenType.FIXED_VALUE: frozenset({TokenType.OPERATOR}),
    TokenType.PERCENTAGE: frozenset({TokenType.OPERATOR}),
    TokenType.CLOSE_BRACKET: frozenset({TokenType.OPERATOR}),
    TokenType.OPERATOR: frozenset({
        TokenType.INSTRUMENT,
        TokenType.FIXED_VALUE,
        TokenType.PERCENTAGE,
        TokenType.OPEN_BRACKET,
    }),
    TokenType.OPEN_BRACKET: frozenset({
        TokenType.INSTRUMENT,
        TokenType.FIXED_VALUE,
        TokenType.PERCENTAGE,
        TokenType.OPEN_BRACKET,
    }),
}


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class FormulaToken:
    """
    Single element of a pricing formula.

    Attributes:
        id: Opaque unique identifier
        type: Token kind
        value: Instrument name, numeric literal, operator or bracket
    """
    id: str
    type: TokenType
    value: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "type": self.type.value, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormulaToken":
        """
        Build a token from its stored representation.

        Raises:
            ValueError: If the type is unknown or the entry is not a mapping
        """
        if not isinstance(data, dict):
            raise ValueError(f"Token entry must be an object, got {type(data).__name__}")
        token_type = TokenType(data.get("type"))
        token_id = data.get("id")
        if token_id is None or token_id == "":
            token_id = str(uuid.uuid4())
        value = data.get("value")
        return cls(
            id=str(token_id),
            type=token_type,
            value="" if value is None else str(value),
        )


# =============================================================================
# Predicates
# =============================================================================

def is_instrument(token: FormulaToken) -> bool:
    return token.type == TokenType.INSTRUMENT


def is_operator(token: FormulaToken) -> bool:
    return token.type == TokenType.OPERATOR


def is_fixed_value(token: FormulaToken) -> bool:
    return token.type == TokenType.FIXED_VALUE


def is_percentage(token: FormulaToken) -> bool:
    return token.type == TokenType.PERCENTAGE


def is_open_bracket(token: FormulaToken) -> bool:
    return token.type == TokenType.OPEN_BRACKET


def is_close_bracket(token: FormulaToken) -> bool:
    return token.type == TokenType.CLOSE_BRACKET


def is_value(token: FormulaToken) -> bool:
    """True for instrument, fixed value and percentage tokens."""
    return token.type in VALUE_TYPES


def _coerce_type(candidate: Any) -> Optional[TokenType]:
    if isinstance(candidate, TokenType):
        return candidate
    try:
        return TokenType(candidate)
    except ValueError:
        return None


def _unclosed_brackets(tokens: Sequence[FormulaToken]) -> int:
    opened = sum(1 for t in tokens if is_open_bracket(t))
    closed = sum(1 for t in tokens if is_close_bracket(t))
    return opened - closed


# =============================================================================
# Grammar
# =============================================================================

def can_add_token_type(tokens: Sequence[FormulaToken], candidate_type: Any) -> bool:
    """
    Decide whether a token of candidate_type may be appended.

    Never raises. Unknown candidate types are rejected.
    """
    candidate = _coerce_type(candidate_type)
    if candidate is None:
        return False

    last_type = tokens[-1].type if tokens else None
    allowed = ALLOWED_NEXT.get(last_type)
    if allowed is None:
        return False

    if candidate in allowed:
        return True

    # Bracket balancing: close after a value or a close bracket
    if (
        candidate == TokenType.CLOSE_BRACKET
        and last_type is not None
        and (last_type in VALUE_TYPES or last_type == TokenType.CLOSE_BRACKET)
    ):
        return _unclosed_brackets(tokens) > 0

    return False


def is_formula_complete(tokens: Sequence[FormulaToken]) -> bool:
    """A formula is complete when non-empty, balanced and not ending mid-expression."""
    if not tokens:
        return False
    if _unclosed_brackets(tokens) != 0:
        return False
    return tokens[-1].type in VALUE_TYPES or tokens[-1].type == TokenType.CLOSE_BRACKET


def append_token(tokens: Sequence[FormulaToken], token: FormulaToken) -> List[FormulaToken]:
    """
    Return a new token list with token appended.

    Raises:
        FormulaError: FRM-001 when the grammar rejects the token
    """
    if not can_add_token_type(tokens, token.type):
        last = tokens[-1].type.value if tokens else "start"
        logger.warning(
            f"[{FormulaErrorCode.INVALID_APPEND}] Token rejected | "
            f"candidate={token.type.value} after={last}"
        )
        raise FormulaError(f"Cannot add {token.type.value} after {last}")
    return list(tokens) + [token]


def remove_last_token(tokens: Sequence[FormulaToken]) -> List[FormulaToken]:
    return list(tokens[:-1])


# =============================================================================
# Factories
# =============================================================================

def _new_id() -> str:
    return str(uuid.uuid4())


def create_instrument_token(instrument: str) -> FormulaToken:
    return FormulaToken(id=_new_id(), type=TokenType.INSTRUMENT, value=instrument)


def create_fixed_value_token(value: Any) -> FormulaToken:
    return FormulaToken(id=_new_id(), type=TokenType.FIXED_VALUE, value=str(value))


def create_percentage_token(value: Any) -> FormulaToken:
    return FormulaToken(id=_new_id(), type=TokenType.PERCENTAGE, value=str(value))


def create_operator_token(operator: str) -> FormulaToken:
    """
    Raises:
        FormulaError: If operator is not one of + - * /
    """
    if operator not in OPERATORS:
        raise FormulaError(f"Unsupported operator: {operator!r}")
    return FormulaToken(id=_new_id(), type=TokenType.OPERATOR, value=operator)


def create_open_bracket_token() -> FormulaToken:
    return FormulaToken(id=_new_id(), type=TokenType.OPEN_BRACKET, value="(")


def create_close_bracket_token() -> FormulaToken:
    return FormulaToken(id=_new_id(), type=TokenType.CLOSE_BRACKET, value=")")


def formula_to_string(tokens: Sequence[FormulaToken]) -> str:
    """Human readable rendering, e.g. 'Argus UCOME + 5%'."""
    parts = []
    for token in tokens:
        if is_percentage(token):
            parts.append(f"{token.value}%")
        else:
            parts.append(token.value)
    return " ".join(parts)


__all__ = [
    "FormulaErrorCode",
    "FormulaError",
    "TokenType",
    "OPERATORS",
    "ALLOWED_NEXT",
    "FormulaToken",
    "is_instrument",
    "is_operator",
    "is_fixed_value",
    "is_percentage",
    "is_open_bracket",
    "is_close_bracket",
    "is_value",
    "can_add_token_type",
    "is_formula_complete",
    "append_token",
    "remove_last_token",
    "create_instrument_token",
    "create_fixed_value_token",
    "create_percentage_token",
    "create_operator_token",
    "create_open_bracket_token",
    "create_close_bracket_token",
    "formula_to_string",
]
