"""Tests for available collateral and maximum maker order sizing."""

import pytest

from estimator.leverage import (
    calculate_available_collateral,
    calculate_maximum_maker_order_size_for_available_collateral,
    calculate_notional_quote_value_of_positions,
)
from estimator.models import (
    LeverageParameters,
    MakerOrderSizeEstimate,
    Position,
    WalletBalances,
)
from estimator.pipmath import decimal_to_pip, multiply_pips


class TestAvailableCollateral:
    """Account value less position margin and held collateral."""

    def test_standard_account(self) -> None:
        # 10 quote + 15 position value - 5 margin - 10 held = 10
        wallet = WalletBalances(
            quote_balance=decimal_to_pip("10"),
            held_collateral=decimal_to_pip("10"),
            positions=[
                Position(
                    market="BAR-USD",
                    quantity=decimal_to_pip("15"),
                    index_price=decimal_to_pip("1"),
                    margin_requirement=decimal_to_pip("5"),
                )
            ],
        )
        assert calculate_available_collateral(wallet) == decimal_to_pip("10")

    def test_short_position_value_is_negative(self) -> None:
        positions = [
            Position(
                market="A-USD",
                quantity=decimal_to_pip("-2"),
                index_price=decimal_to_pip("3"),
            ),
            Position(
                market="B-USD",
                quantity=decimal_to_pip("1"),
                index_price=decimal_to_pip("4"),
            ),
        ]
        # -6 + 4
        assert calculate_notional_quote_value_of_positions(positions) == decimal_to_pip(
            "-2"
        )

    def test_no_positions(self) -> None:
        wallet = WalletBalances(
            quote_balance=decimal_to_pip("7"), held_collateral=decimal_to_pip("2")
        )
        assert calculate_available_collateral(wallet) == decimal_to_pip("5")


@pytest.fixture
def small_schedule() -> LeverageParameters:
    """10% IMF up to 5, +2% per started 1 above, maximum 7."""
    return LeverageParameters(
        initial_margin_fraction=decimal_to_pip("0.1"),
        incremental_initial_margin_fraction=decimal_to_pip("0.02"),
        base_position_size=decimal_to_pip("5"),
        incremental_position_size=decimal_to_pip("1"),
        maximum_position_size=decimal_to_pip("7"),
        maintenance_margin_fraction=decimal_to_pip("0.01"),
    )


class TestMaximumMakerOrderSize:
    """Walks IMF brackets at a limit price of 100."""

    @pytest.mark.parametrize(
        ("available_collateral", "base_quantity", "imf", "margin_requirement"),
        [
            ("0.00000010", "0.00000001", "0.1", "0.00000010"),
            ("1", "0.1", "0.1", "1"),
            ("50", "5", "0.1", "50"),
            # Cannot reach the next bracket yet
            ("60", "5", "0.1", "50"),
            ("60.00000011", "5", "0.1", "50"),
            ("60.00000012", "5.00000001", "0.12", "60.00000012"),
            ("66", "5.5", "0.12", "66"),
            ("72", "6", "0.12", "72"),
            ("84.00000013", "6", "0.12", "72"),
            ("84.00000014", "6.00000001", "0.14", "84.00000014"),
            ("98", "7", "0.14", "98"),
            # 7 is the maximum position size
            ("1000", "7", "0.14", "98"),
        ],
    )
    def test_bracket_walk(
        self,
        small_schedule: LeverageParameters,
        available_collateral: str,
        base_quantity: str,
        imf: str,
        margin_requirement: str,
    ) -> None:
        limit_price = decimal_to_pip("100")
        expected_base = decimal_to_pip(base_quantity)
        assert calculate_maximum_maker_order_size_for_available_collateral(
            available_collateral=decimal_to_pip(available_collateral),
            initial_margin_fraction_override=None,
            leverage_parameters=small_schedule,
            limit_price=limit_price,
        ) == MakerOrderSizeEstimate(
            base_quantity=expected_base,
            quote_quantity=multiply_pips(expected_base, limit_price),
            initial_margin_fraction=decimal_to_pip(imf),
            initial_margin_requirement=decimal_to_pip(margin_requirement),
        )

    @pytest.mark.parametrize("available_collateral", ["0", "-1"])
    def test_no_collateral(
        self, small_schedule: LeverageParameters, available_collateral: str
    ) -> None:
        assert calculate_maximum_maker_order_size_for_available_collateral(
            available_collateral=decimal_to_pip(available_collateral),
            initial_margin_fraction_override=None,
            leverage_parameters=small_schedule,
            limit_price=decimal_to_pip("100"),
        ) == MakerOrderSizeEstimate(0, 0, 0, 0)

    def test_override_applies_to_base_bracket(
        self, small_schedule: LeverageParameters
    ) -> None:
        # 20% override: 10 collateral supports 0.5 at price 100
        estimate = calculate_maximum_maker_order_size_for_available_collateral(
            available_collateral=decimal_to_pip("10"),
            initial_margin_fraction_override=decimal_to_pip("0.2"),
            leverage_parameters=small_schedule,
            limit_price=decimal_to_pip("100"),
        )
        assert estimate.base_quantity == decimal_to_pip("0.5")
        assert estimate.initial_margin_fraction == decimal_to_pip("0.2")
