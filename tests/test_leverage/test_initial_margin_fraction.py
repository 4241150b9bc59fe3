"""Tests for bracketed IMF computation and position margin requirements.

Default schedule (conftest): 3% IMF up to 1000, +1% per started 100 above.
"""

import pytest

from estimator.leverage import (
    calculate_initial_margin_fraction_with_override,
    calculate_initial_margin_requirement_of_position,
)
from estimator.models import LeverageParameters
from estimator.pipmath import decimal_to_pip


def imf(
    leverage_parameters: LeverageParameters,
    base_quantity: str,
    override: str | None = None,
) -> int:
    return calculate_initial_margin_fraction_with_override(
        base_quantity=decimal_to_pip(base_quantity),
        initial_margin_fraction_override=(
            decimal_to_pip(override) if override is not None else None
        ),
        leverage_parameters=leverage_parameters,
    )


class TestBracketedImf:
    """IMF steps up at every incremental position size beyond the base."""

    @pytest.mark.parametrize(
        ("base_quantity", "expected_imf"),
        [
            ("1", "0.03"),
            ("-1", "0.03"),
            ("1000", "0.03"),
            ("-1000", "0.03"),
            ("1000.00000001", "0.04"),
            ("1001", "0.04"),
            ("1100", "0.04"),
            ("1101", "0.05"),
            ("-1101", "0.05"),
        ],
    )
    def test_imf_by_position_size(
        self,
        leverage_parameters: LeverageParameters,
        base_quantity: str,
        expected_imf: str,
    ) -> None:
        assert imf(leverage_parameters, base_quantity) == decimal_to_pip(expected_imf)

    def test_zero_quantity_uses_base_imf(
        self, leverage_parameters: LeverageParameters
    ) -> None:
        assert imf(leverage_parameters, "0") == decimal_to_pip("0.03")

    def test_monotonically_non_decreasing(
        self, leverage_parameters: LeverageParameters
    ) -> None:
        sizes = [decimal_to_pip(str(size)) for size in range(0, 3000, 7)]
        fractions = [
            calculate_initial_margin_fraction_with_override(size, None, leverage_parameters)
            for size in sizes
        ]
        assert fractions == sorted(fractions)
        assert min(fractions) == leverage_parameters.initial_margin_fraction


class TestImfOverride:
    """An override only wins when it is larger than the bracketed IMF."""

    @pytest.mark.parametrize(
        ("base_quantity", "override", "expected_imf"),
        [
            ("1", "0.02", "0.03"),
            ("1", "0.03", "0.03"),
            ("1", "0.04", "0.04"),
            ("1000", "0.04", "0.04"),
            ("1001", "0.02", "0.04"),
            ("1001", "0.04", "0.04"),
            ("1001", "0.05", "0.05"),
            ("1101", "0.04", "0.05"),
        ],
    )
    def test_override(
        self,
        leverage_parameters: LeverageParameters,
        base_quantity: str,
        override: str,
        expected_imf: str,
    ) -> None:
        assert imf(leverage_parameters, base_quantity, override) == decimal_to_pip(
            expected_imf
        )


class TestPositionMarginRequirement:
    """Margin requirement = |quantity * index price| * IMF."""

    def test_long_and_short_positions(
        self, leverage_parameters: LeverageParameters
    ) -> None:
        for quantity in ("1001", "-1001"):
            requirement = calculate_initial_margin_requirement_of_position(
                index_price=decimal_to_pip("2"),
                initial_margin_fraction_override=None,
                leverage_parameters=leverage_parameters,
                position_quantity=decimal_to_pip(quantity),
            )
            # 2002 * 0.04
            assert requirement == decimal_to_pip("80.08")

    def test_override_raises_requirement(
        self, leverage_parameters: LeverageParameters
    ) -> None:
        requirement = calculate_initial_margin_requirement_of_position(
            index_price=decimal_to_pip("1"),
            initial_margin_fraction_override=decimal_to_pip("0.5"),
            leverage_parameters=leverage_parameters,
            position_quantity=decimal_to_pip("10"),
        )
        assert requirement == decimal_to_pip("5")
