"""Tiered initial margin fraction (IMF) and collateral calculations.

All inputs and outputs are int pips. Bracket sizes are inclusive at their
upper end: with a base position size of 1000 and an incremental size of 100,
sizes 1000.00000001 through 1100 share the first incremental IMF.
"""

from estimator.logging import get_logger
from estimator.models import (
    InitialMarginFractionOverride,
    LeverageParameters,
    MakerOrderSizeEstimate,
    Market,
    Position,
    WalletBalances,
    WalletCollateral,
)
from estimator.pipmath import ONE_IN_PIPS, Rounding, divide_int, multiply_pips

logger = get_logger(__name__)


def calculate_initial_margin_fraction(
    leverage_parameters: LeverageParameters,
    base_quantity: int,
) -> int:
    """Return the bracketed IMF for a position size (sign ignored)."""
    position_size = abs(base_quantity)
    if position_size <= leverage_parameters.base_position_size:
        return leverage_parameters.initial_margin_fraction
    if leverage_parameters.incremental_position_size <= 0:
        return leverage_parameters.initial_margin_fraction

    increments = divide_int(
        position_size - leverage_parameters.base_position_size,
        leverage_parameters.incremental_position_size,
        Rounding.ROUND_UP,
    )
    return (
        leverage_parameters.initial_margin_fraction
        + increments * leverage_parameters.incremental_initial_margin_fraction
    )


def calculate_initial_margin_fraction_with_override(
    base_quantity: int,
    initial_margin_fraction_override: int | None,
    leverage_parameters: LeverageParameters,
) -> int:
    """Return the IMF for a position or order size, honoring a wallet override.

    The override only ever raises the IMF: the result is the larger of the
    bracketed IMF and the override.

    Args:
        base_quantity: Signed position or order size in pips.
        initial_margin_fraction_override: Wallet's override, or None.
        leverage_parameters: Market leverage schedule.

    Returns:
        IMF in pips, never below ``initial_margin_fraction``.
    """
    return max(
        calculate_initial_margin_fraction(leverage_parameters, base_quantity),
        initial_margin_fraction_override or 0,
    )


def calculate_initial_margin_requirement_of_position(
    index_price: int,
    initial_margin_fraction_override: int | None,
    leverage_parameters: LeverageParameters,
    position_quantity: int,
) -> int:
    """Return the (unsigned) initial margin requirement of a position."""
    quote_value_of_position = multiply_pips(position_quantity, index_price)
    initial_margin_fraction = calculate_initial_margin_fraction_with_override(
        position_quantity,
        initial_margin_fraction_override,
        leverage_parameters,
    )
    return multiply_pips(abs(quote_value_of_position), initial_margin_fraction)


def calculate_notional_quote_value_of_positions(positions: list[Position]) -> int:
    """Signed sum of position values at index price."""
    return sum(
        multiply_pips(position.quantity, position.index_price)
        for position in positions
    )


def calculate_available_collateral(wallet: WalletBalances) -> int:
    """Account value less position margin and collateral held for orders.

    Account value is the quote balance plus the notional value of all
    positions. The result is signed; negative means the wallet is over its
    initial margin.
    """
    account_value = wallet.quote_balance + calculate_notional_quote_value_of_positions(
        wallet.positions
    )
    initial_margin_requirement_of_all_positions = sum(
        position.margin_requirement for position in wallet.positions
    )
    return (
        account_value
        - initial_margin_requirement_of_all_positions
        - wallet.held_collateral
    )


def calculate_maximum_initial_margin_fraction_override(
    market: Market,
    wallet: WalletCollateral,
    existing_overrides: list[InitialMarginFractionOverride],
) -> int:
    """Highest IMF override the wallet's collateral can support in a market.

    Raising the override from the current fraction ``c`` to ``x`` scales the
    margin of the open position (value ``V``) and of the open orders (held
    collateral ``H``, margined at ``c``). The largest ``x`` satisfying

        (x - c) * V + H * (x / c - 1) <= A

    where ``A`` is free minus held collateral, is returned, truncated to pips
    and capped at 1.0 (1x leverage). It never drops below the current fraction,
    even when the wallet is already short of collateral. Without a position or
    held collateral nothing constrains the override and 1.0 is returned.

    Args:
        market: Market to compute the override for.
        wallet: Wallet collateral snapshot including its positions.
        existing_overrides: The wallet's current overrides (any market).

    Returns:
        Maximum IMF override in pips.
    """
    current_override = next(
        (
            override.initial_margin_fraction_override
            for override in existing_overrides
            if override.market == market.market
        ),
        None,
    )
    current_fraction = (
        current_override or market.leverage_parameters.initial_margin_fraction
    )

    position = wallet.position_in(market.market)
    position_value = (
        abs(multiply_pips(position.quantity, position.index_price)) if position else 0
    )
    held_collateral = wallet.held_collateral
    available_collateral = wallet.free_collateral - held_collateral

    denominator = position_value * current_fraction + held_collateral * ONE_IN_PIPS
    if denominator <= 0 or current_fraction <= 0:
        logger.info(
            "imf_override_unconstrained",
            market=market.market,
            held_collateral_pips=held_collateral,
        )
        return ONE_IN_PIPS

    numerator = (
        available_collateral * current_fraction * ONE_IN_PIPS
        + current_fraction * current_fraction * position_value
        + held_collateral * current_fraction * ONE_IN_PIPS
    )
    maximum_override = max(
        min(divide_int(numerator, denominator), ONE_IN_PIPS), current_fraction
    )

    logger.debug(
        "maximum_imf_override_computed",
        market=market.market,
        current_fraction_pips=current_fraction,
        position_value_pips=position_value,
        available_collateral_pips=available_collateral,
        maximum_override_pips=maximum_override,
    )
    return maximum_override


def calculate_maximum_maker_order_size_for_available_collateral(
    available_collateral: int,
    initial_margin_fraction_override: int | None,
    leverage_parameters: LeverageParameters,
    limit_price: int,
) -> MakerOrderSizeEstimate:
    """Largest maker order size the available collateral can margin.

    Walks the IMF brackets from the base position size upward, computing the
    margin range of the smallest and largest order size in each bracket, and
    stops in the bracket where the collateral falls. If the collateral cannot
    reach the smallest size of the next bracket, the previous bracket's
    maximum is returned. Sizes never exceed ``maximum_position_size``.
    """
    if available_collateral <= 0:
        return MakerOrderSizeEstimate(0, 0, 0, 0)

    override = initial_margin_fraction_override or 0
    baseline_imf = max(leverage_parameters.initial_margin_fraction, override)
    base_size = leverage_parameters.base_position_size
    baseline_margin_requirement = (
        base_size * limit_price * baseline_imf // ONE_IN_PIPS // ONE_IN_PIPS
    )

    if available_collateral <= baseline_margin_requirement:
        base_quantity = base_size * available_collateral // baseline_margin_requirement
        return MakerOrderSizeEstimate(
            base_quantity=base_quantity,
            quote_quantity=multiply_pips(base_quantity, limit_price),
            initial_margin_fraction=baseline_imf,
            initial_margin_requirement=available_collateral,
        )

    current_maxima = MakerOrderSizeEstimate(
        base_quantity=base_size,
        quote_quantity=multiply_pips(base_size, limit_price),
        initial_margin_fraction=baseline_imf,
        initial_margin_requirement=baseline_margin_requirement,
    )
    if leverage_parameters.incremental_position_size <= 0:
        return current_maxima

    increment = 1
    while (
        base_size + leverage_parameters.incremental_position_size * increment
        <= leverage_parameters.maximum_position_size
    ):
        bracket_imf = max(
            leverage_parameters.initial_margin_fraction
            + leverage_parameters.incremental_initial_margin_fraction * increment,
            override,
        )
        from_order_size = (
            base_size
            + leverage_parameters.incremental_position_size * (increment - 1)
            + 1
        )
        to_order_size = (
            base_size + leverage_parameters.incremental_position_size * increment
        )
        from_margin_requirement = (
            from_order_size * limit_price * bracket_imf // ONE_IN_PIPS // ONE_IN_PIPS
        )
        to_margin_requirement = (
            to_order_size * limit_price * bracket_imf // ONE_IN_PIPS // ONE_IN_PIPS
        )

        if available_collateral < from_margin_requirement:
            # Cannot reach this bracket; the previous bracket's maximum stands
            return current_maxima

        if available_collateral <= to_margin_requirement:
            base_quantity = to_order_size * available_collateral // to_margin_requirement
            return MakerOrderSizeEstimate(
                base_quantity=base_quantity,
                quote_quantity=multiply_pips(base_quantity, limit_price),
                initial_margin_fraction=bracket_imf,
                initial_margin_requirement=available_collateral,
            )

        current_maxima = MakerOrderSizeEstimate(
            base_quantity=to_order_size,
            quote_quantity=multiply_pips(to_order_size, limit_price),
            initial_margin_fraction=bracket_imf,
            initial_margin_requirement=to_margin_requirement,
        )
        increment += 1

    return current_maxima
