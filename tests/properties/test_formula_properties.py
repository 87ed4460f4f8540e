"""
============================================================================
Property-Based Tests for Pricing Formulas
============================================================================

Reliability Level: L5 Core

Tests formula parsing, the append grammar, exposure signs and price
evaluation using Hypothesis. Minimum 100 iterations per property.

Properties tested:
- Parsing a stored formula twice yields the same formula
- Tokens appended through the grammar never leave a malformed prefix
- Buy and sell exposures are exact negations; physical and pricing oppose
- Evaluation is strictly left to right; division by zero is skipped
- MTM value flips sign with direction

============================================================================
"""

from typing import List

from hypothesis import given, settings
from hypothesis import strategies as st

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from app.logic.exposure_calculator import calculate_exposures
from app.logic.formula_parser import PricingFormula, validate_and_parse_pricing_formula
from app.logic.formula_tokens import (
    FormulaError,
    FormulaToken,
    TokenType,
    VALUE_TYPES,
    append_token,
    create_close_bracket_token,
    create_fixed_value_token,
    create_instrument_token,
    create_open_bracket_token,
    create_operator_token,
    create_percentage_token,
)
from app.logic.mtm_valuator import calculate_mtm_value
from app.logic.price_evaluator import calculate_price_from_formula


# =============================================================================
# HYPOTHESIS STRATEGIES
# =============================================================================

instrument_strategy = st.sampled_from([
    "Argus UCOME", "Argus RME", "Argus FAME0", "Platts LSGO", "Argus HVO",
])

token_id_strategy = st.text(alphabet="abcdef0123456789", min_size=1, max_size=12)

stored_token_strategy = st.one_of(
    st.builds(
        lambda tid, name: {"id": tid, "type": "instrument", "value": name},
        token_id_strategy, instrument_strategy,
    ),
    st.builds(
        lambda tid, op: {"id": tid, "type": "operator", "value": op},
        token_id_strategy, st.sampled_from(["+", "-", "*", "/"]),
    ),
    st.builds(
        lambda tid, n: {"id": tid, "type": "fixedValue", "value": str(n)},
        token_id_strategy, st.integers(min_value=-500, max_value=500),
    ),
)

exposure_map_strategy = st.dictionaries(
    instrument_strategy,
    st.floats(min_value=-1e6, max_value=1e6, allow_nan=False),
    max_size=4,
)

stored_formula_strategy = st.fixed_dictionaries({
    "tokens": st.lists(stored_token_strategy, max_size=8),
    "exposures": st.fixed_dictionaries({
        "physical": exposure_map_strategy,
        "pricing": exposure_map_strategy,
    }),
})

instrument_tokens_strategy = st.lists(
    instrument_strategy.map(create_instrument_token), min_size=1, max_size=6,
)

quantity_strategy = st.integers(min_value=1, max_value=1_000_000)

token_factory_strategy = st.sampled_from([
    lambda: create_instrument_token("Argus UCOME"),
    lambda: create_fixed_value_token(10),
    lambda: create_percentage_token(5),
    lambda: create_operator_token("+"),
    lambda: create_operator_token("*"),
    create_open_bracket_token,
    create_close_bracket_token,
])


# =============================================================================
# PARSING
# =============================================================================

class TestParseIdempotence:

    @settings(max_examples=100)
    @given(stored=stored_formula_strategy)
    def test_parse_is_idempotent(self, stored) -> None:
        once = validate_and_parse_pricing_formula(stored)
        twice = validate_and_parse_pricing_formula(once.to_dict())
        assert twice == once

    @settings(max_examples=100)
    @given(stored=stored_formula_strategy)
    def test_json_round_trip_preserves_ids(self, stored) -> None:
        parsed = validate_and_parse_pricing_formula(stored)
        reparsed = validate_and_parse_pricing_formula(parsed.to_json())
        assert [t.id for t in reparsed.tokens] == [t["id"] for t in stored["tokens"]]

    def test_none_is_empty(self) -> None:
        assert validate_and_parse_pricing_formula(None) == PricingFormula()


# =============================================================================
# GRAMMAR
# =============================================================================

def _build(factories) -> List[FormulaToken]:
    tokens: List[FormulaToken] = []
    for factory in factories:
        try:
            tokens = append_token(tokens, factory())
        except FormulaError:
            continue
    return tokens


class TestAppendGrammar:

    @settings(max_examples=100)
    @given(factories=st.lists(token_factory_strategy, max_size=30))
    def test_prefix_always_well_formed(self, factories) -> None:
        tokens = _build(factories)
        depth = 0
        previous = None
        for token in tokens:
            if token.type == TokenType.OPEN_BRACKET:
                depth += 1
            elif token.type == TokenType.CLOSE_BRACKET:
                depth -= 1
            assert depth >= 0
            if previous in VALUE_TYPES or previous == TokenType.CLOSE_BRACKET:
                assert token.type in (TokenType.OPERATOR, TokenType.CLOSE_BRACKET)
            if previous == TokenType.OPERATOR:
                assert token.type != TokenType.OPERATOR
            previous = token.type

    @settings(max_examples=100)
    @given(factories=st.lists(token_factory_strategy, max_size=30))
    def test_first_token_is_not_operator(self, factories) -> None:
        tokens = _build(factories)
        if tokens:
            assert tokens[0].type in (
                TokenType.INSTRUMENT, TokenType.FIXED_VALUE, TokenType.OPEN_BRACKET,
            )


# =============================================================================
# EXPOSURE SIGNS
# =============================================================================

class TestExposureSigns:

    @settings(max_examples=100)
    @given(tokens=instrument_tokens_strategy, quantity=quantity_strategy)
    def test_buy_sell_symmetry(self, tokens, quantity) -> None:
        buy = calculate_exposures(tokens, quantity, "buy")
        sell = calculate_exposures(tokens, quantity, "sell")
        assert set(buy.physical) == set(sell.physical)
        for instrument, amount in buy.physical.items():
            assert sell.physical[instrument] == -amount
            assert buy.pricing[instrument] == -amount

    @settings(max_examples=100)
    @given(tokens=instrument_tokens_strategy, quantity=quantity_strategy)
    def test_repeated_instruments_accumulate(self, tokens, quantity) -> None:
        result = calculate_exposures(tokens, quantity, "buy")
        for instrument, amount in result.physical.items():
            occurrences = sum(1 for t in tokens if t.value == instrument)
            assert amount == occurrences * quantity

    @settings(max_examples=100)
    @given(tokens=instrument_tokens_strategy, direction=st.sampled_from(["buy", "sell"]))
    def test_zero_quantity_has_no_exposure(self, tokens, direction) -> None:
        result = calculate_exposures(tokens, 0, direction)
        assert result.physical == {}
        assert result.pricing == {}


# =============================================================================
# EVALUATION
# =============================================================================

class TestEvaluation:

    @settings(max_examples=100)
    @given(
        values=st.lists(st.integers(min_value=-100, max_value=100), min_size=1, max_size=4),
        operators=st.lists(st.sampled_from(["+", "-", "*"]), min_size=3, max_size=3),
    )
    def test_left_to_right(self, values, operators) -> None:
        tokens = [create_fixed_value_token(values[0])]
        expected = values[0]
        for value, operator in zip(values[1:], operators):
            tokens.append(create_operator_token(operator))
            tokens.append(create_fixed_value_token(value))
            if operator == "+":
                expected = expected + value
            elif operator == "-":
                expected = expected - value
            else:
                expected = expected * value
        assert calculate_price_from_formula(tokens) == expected

    @settings(max_examples=100)
    @given(value=st.integers(min_value=-10000, max_value=10000))
    def test_division_by_zero_leaves_value(self, value) -> None:
        tokens = [
            create_fixed_value_token(value),
            create_operator_token("/"),
            create_fixed_value_token(0),
        ]
        assert calculate_price_from_formula(tokens) == value


class TestMTMSign:

    @settings(max_examples=100)
    @given(
        contract=st.floats(min_value=0, max_value=5000, allow_nan=False),
        market=st.floats(min_value=0, max_value=5000, allow_nan=False),
        quantity=st.floats(min_value=0, max_value=100000, allow_nan=False),
    )
    def test_direction_flips_sign(self, contract, market, quantity) -> None:
        buy = calculate_mtm_value(contract, market, quantity, "buy")
        sell = calculate_mtm_value(contract, market, quantity, "sell")
        assert buy == -sell
