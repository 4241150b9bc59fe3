"""Buy/sell panel estimates for an order-entry UI.

BuySellPanelEstimator composes the fill simulator, the step partitioner and
the margin bracket calculator into the figures the order form shows: the
blended fill price, the per-bracket margin impact of a taker order, and the
taker fill, maker remainder and collateral cost of what the user typed in.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from decimal import Decimal
from itertools import islice

from estimator.config import EstimatorSettings
from estimator.exceptions import InvalidPanelInputError
from estimator.fills import calculate_gross_fill_quantities
from estimator.leverage import (
    calculate_available_collateral,
    calculate_initial_margin_fraction_with_override,
    calculate_initial_margin_requirement_of_position,
    calculate_maximum_initial_margin_fraction_override,
    calculate_maximum_maker_order_size_for_available_collateral,
)
from estimator.logging import get_logger
from estimator.models import (
    BuySellPanelEstimate,
    InitialMarginFractionOverride,
    Market,
    OrderSide,
    PanelFormInputs,
    Position,
    PriceAndSize,
    QuantityStep,
    StandingOrder,
    TakerOrder,
    WalletBalances,
    WalletCollateral,
)
from estimator.orders import is_reducing, sort_orders_by_best_price
from estimator.pipmath import (
    ONE_IN_PIPS,
    decimal_to_pip,
    divide_pips,
    double_pips_to_pips,
    multiply_pips,
    pip_to_decimal,
)
from estimator.reduce_only import (
    determine_maximum_reduce_only_quantity_available_at_price_level,
)
from estimator.steps import step_through_matching_loop_quantities

logger = get_logger(__name__)


@dataclass
class FillEstimate:
    """Gross fill of a taker order and its blended price (all pips)."""

    base_quantity: int
    quote_quantity: int
    average_price: int


@dataclass
class BracketStepEstimate:
    """One fill step and the wallet's position margin right after it."""

    quantity: int
    maker_order_price: int
    reducing_standing_order_price: int | None
    position_quantity_after: int
    initial_margin_fraction: int
    initial_margin_requirement: int


class BuySellPanelEstimator:
    """Estimates taker fills and their margin impact for the order form.

    Args:
        settings: Estimator settings (double-pip precision, step limit).
    """

    def __init__(self, settings: EstimatorSettings) -> None:
        self._settings = settings

    def estimate_fill(
        self,
        maker_side_orders: Iterable[PriceAndSize],
        taker_order: TakerOrder,
    ) -> FillEstimate:
        """Estimate gross fill quantities and the blended fill price.

        With double-pip precision enabled, quantities are computed at 16
        digits and truncated back to pips once, at the end.

        Returns:
            FillEstimate; average_price is zero when nothing would fill.
        """
        use_double_pips = self._settings.use_double_pip_precision
        fill = calculate_gross_fill_quantities(
            maker_side_orders, taker_order, use_double_pips
        )
        base_quantity = fill.base_quantity
        quote_quantity = fill.quote_quantity
        if use_double_pips:
            base_quantity = double_pips_to_pips(base_quantity)
            quote_quantity = double_pips_to_pips(quote_quantity)

        return FillEstimate(
            base_quantity=base_quantity,
            quote_quantity=quote_quantity,
            average_price=divide_pips(quote_quantity, base_quantity),
        )

    def estimate_bracket_steps(
        self,
        market: Market,
        maker_side_orders: Iterable[PriceAndSize],
        taker_side: OrderSide,
        current_position: Position | None = None,
        wallets_standing_orders: Iterable[StandingOrder] = (),
        initial_margin_fraction_override: int | None = None,
    ) -> list[BracketStepEstimate]:
        """Partition the available liquidity and price each step's margin.

        The margin requirement is that of the whole position after the step,
        valued at the market's index price, so consecutive rows show how the
        requirement grows (or shrinks) bracket by bracket.

        At most ``settings.max_estimate_steps`` steps are returned; a book that
        would yield more is logged as truncated.
        """
        partitioner = step_through_matching_loop_quantities(
            leverage_parameters=market.leverage_parameters,
            maker_side_orders=maker_side_orders,
            market=market,
            taker_side=taker_side,
            current_position=current_position,
            wallets_standing_orders=wallets_standing_orders,
        )

        position_quantity = current_position.quantity if current_position else 0
        estimates: list[BracketStepEstimate] = []
        max_steps = self._settings.max_estimate_steps
        steps = list(islice(partitioner, max_steps + 1))
        truncated = len(steps) > max_steps
        for step in steps[:max_steps]:
            if taker_side is OrderSide.BUY:
                position_quantity += step.quantity
            else:
                position_quantity -= step.quantity

            estimates.append(
                BracketStepEstimate(
                    quantity=step.quantity,
                    maker_order_price=step.maker_order_price,
                    reducing_standing_order_price=step.reducing_standing_order_price,
                    position_quantity_after=position_quantity,
                    initial_margin_fraction=calculate_initial_margin_fraction_with_override(
                        position_quantity,
                        initial_margin_fraction_override,
                        market.leverage_parameters,
                    ),
                    initial_margin_requirement=calculate_initial_margin_requirement_of_position(
                        index_price=market.index_price,
                        initial_margin_fraction_override=initial_margin_fraction_override,
                        leverage_parameters=market.leverage_parameters,
                        position_quantity=position_quantity,
                    ),
                )
            )

        if truncated:
            logger.info(
                "bracket_step_estimate_truncated",
                market=market.market,
                max_estimate_steps=max_steps,
            )
        return estimates

    def maximum_initial_margin_fraction_override(
        self,
        market: Market,
        wallet: WalletCollateral,
        existing_overrides: list[InitialMarginFractionOverride],
    ) -> Decimal:
        """Maximum IMF override for the leverage slider, as a Decimal."""
        return pip_to_decimal(
            calculate_maximum_initial_margin_fraction_override(
                market, wallet, existing_overrides
            )
        )

    def calculate_buy_sell_panel_estimate(
        self,
        form_inputs: PanelFormInputs,
        market: Market,
        maker_side_orders: Iterable[PriceAndSize],
        wallet: WalletBalances,
        initial_margin_fraction_override: int | None = None,
    ) -> BuySellPanelEstimate:
        """Estimate what a buy/sell panel order fills, rests and costs.

        The taker part walks the book step by step and stops at the limit
        price, at the desired quantity, or when the buying power is spent.
        Buying power is the available collateral, scaled by the slider factor
        in slider mode. Within a step the cost grows linearly, so the last
        step is cut to what the remaining power affords.

        With a limit price, what the taker part left over rests on the book
        as a maker order at that price: the rest of the desired quantity, or
        in slider mode the largest order the remaining power can margin. The
        maker quantity never exceeds the reduce-only quantity still open at
        the limit price plus that largest order.

        The cost is the drop in available collateral: the fill's loss against
        the index price plus the change in margin of the position and of the
        wallet's open orders in the market, the new maker order included.
        Standing orders that stop reducing the position need margin again and
        ones that start reducing it free theirs. Trades that free collateral
        cost zero.

        Args:
            form_inputs: Side, exactly one quantity input, optional limit price.
            market: Market the order is for.
            maker_side_orders: Price levels opposite the taker, best first.
            wallet: Balances, positions and standing orders of the wallet.
            initial_margin_fraction_override: Wallet's IMF override, or None.

        Returns:
            BuySellPanelEstimate with unsigned quantities; all zeros when the
            wallet has no available collateral or a quantity input is zero.

        Raises:
            InvalidPanelInputError: If not exactly one quantity input is set,
                or the slider factor is outside 0 to 1.
        """
        slider_factor = _validate_form_inputs(form_inputs)
        remaining_base = _magnitude(form_inputs.desired_trade_base_quantity)
        remaining_quote = _magnitude(form_inputs.desired_trade_quote_quantity)

        available_collateral = calculate_available_collateral(wallet)
        if available_collateral <= 0 or 0 in (
            remaining_base,
            remaining_quote,
            slider_factor,
        ):
            return BuySellPanelEstimate(0, 0, 0, 0, 0)

        buying_power = available_collateral
        if slider_factor is not None:
            buying_power = multiply_pips(available_collateral, slider_factor)

        side = form_inputs.taker_side
        limit_price = form_inputs.limit_price
        override = initial_margin_fraction_override
        index_price = market.index_price
        current_position = wallet.position_in(market.market)
        start_position_quantity = current_position.quantity if current_position else 0

        partitioner = step_through_matching_loop_quantities(
            leverage_parameters=market.leverage_parameters,
            maker_side_orders=_levels_within_limit(
                maker_side_orders, side, limit_price
            ),
            market=market,
            taker_side=side,
            current_position=current_position,
            wallets_standing_orders=wallet.standing_orders,
        )

        position_quantity = start_position_quantity
        remaining_power = buying_power
        taker_base_quantity = 0
        taker_quote_quantity = 0
        power_exhausted = False
        for step in islice(partitioner, self._settings.max_estimate_steps):
            if remaining_base == 0 or remaining_quote == 0:
                break

            quantity = step.quantity
            spends_remaining_quote = False
            if remaining_base is not None:
                quantity = min(quantity, remaining_base)
            if remaining_quote is not None:
                quantity_for_quote = divide_pips(
                    remaining_quote, step.maker_order_price
                )
                if quantity_for_quote <= quantity:
                    quantity = quantity_for_quote
                    spends_remaining_quote = True
            if quantity <= 0:
                break

            fixed_cost, unit_cost = _step_cost_terms(
                market, override, side, position_quantity, step, quantity
            )
            step_cost = fixed_cost + multiply_pips(
                quantity, unit_cost, round_up=True
            )
            if step_cost > remaining_power:
                power_exhausted = True
                spends_remaining_quote = False
                quantity = min(
                    quantity,
                    _affordable_quantity(remaining_power - fixed_cost, unit_cost),
                )
                if quantity <= 0:
                    break
                step_cost = fixed_cost + multiply_pips(
                    quantity, unit_cost, round_up=True
                )

            trade_quote = (
                remaining_quote
                if spends_remaining_quote
                else multiply_pips(quantity, step.maker_order_price)
            )
            taker_base_quantity += quantity
            taker_quote_quantity += trade_quote
            remaining_power -= step_cost
            if remaining_base is not None:
                remaining_base -= quantity
            if remaining_quote is not None:
                remaining_quote -= trade_quote
            if side is OrderSide.BUY:
                position_quantity += quantity
            else:
                position_quantity -= quantity

            if power_exhausted:
                break

        maker_base_quantity = 0
        maker_quote_quantity = 0
        if (
            limit_price is not None
            and not power_exhausted
            and remaining_base != 0
            and remaining_quote != 0
        ):
            maker_base_quantity, maker_quote_quantity = _size_maker_remainder(
                market=market,
                initial_margin_fraction_override=override,
                side=side,
                position_quantity=position_quantity,
                wallets_standing_orders=wallet.standing_orders,
                limit_price=limit_price,
                remaining_power=remaining_power,
                remaining_base=remaining_base,
                remaining_quote=remaining_quote,
            )

        open_orders = [
            order
            for order in wallet.standing_orders
            if order.market == market.market and order.is_active
        ]
        open_orders_after = list(open_orders)
        if maker_base_quantity > 0:
            open_orders_after.append(
                StandingOrder(
                    market=market.market,
                    side=side,
                    original_quantity=maker_base_quantity,
                    price=limit_price,
                )
            )

        value_change = multiply_pips(position_quantity, index_price) - multiply_pips(
            start_position_quantity, index_price
        )
        quote_change = (
            -taker_quote_quantity if side is OrderSide.BUY else taker_quote_quantity
        )
        margin_change = _margin_requirement(
            market, override, position_quantity, open_orders_after
        ) - _margin_requirement(
            market, override, start_position_quantity, open_orders
        )
        cost = max(margin_change - value_change - quote_change, 0)

        logger.debug(
            "buy_sell_panel_estimated",
            market=market.market,
            taker_side=side.value,
            buying_power_pips=buying_power,
            taker_base_quantity_pips=taker_base_quantity,
            maker_base_quantity_pips=maker_base_quantity,
            cost_pips=cost,
            power_exhausted=power_exhausted,
        )
        return BuySellPanelEstimate(
            taker_base_quantity=taker_base_quantity,
            taker_quote_quantity=taker_quote_quantity,
            maker_base_quantity=maker_base_quantity,
            maker_quote_quantity=maker_quote_quantity,
            cost=cost,
        )


def _validate_form_inputs(form_inputs: PanelFormInputs) -> int | None:
    """Check the quantity inputs; return the slider factor in pips, if set."""
    quantity_inputs = (
        form_inputs.desired_trade_base_quantity,
        form_inputs.desired_trade_quote_quantity,
        form_inputs.slider_factor,
    )
    if sum(value is not None for value in quantity_inputs) != 1:
        raise InvalidPanelInputError(
            "Either desired_trade_base_quantity, desired_trade_quote_quantity, "
            "or slider_factor needs to be provided"
        )
    if form_inputs.slider_factor is None:
        return None

    slider_factor = decimal_to_pip(str(form_inputs.slider_factor))
    if not 0 <= slider_factor <= ONE_IN_PIPS:
        raise InvalidPanelInputError(
            "slider_factor must be a number between 0 and 1 "
            f"(got {form_inputs.slider_factor})"
        )
    return slider_factor


def _magnitude(quantity: int | None) -> int | None:
    return abs(quantity) if quantity is not None else None


def _levels_within_limit(
    maker_side_orders: Iterable[PriceAndSize],
    side: OrderSide,
    limit_price: int | None,
) -> Iterator[PriceAndSize]:
    """Yield maker levels until one is priced beyond the taker's limit."""
    for level in maker_side_orders:
        if limit_price is not None:
            if side is OrderSide.BUY and level.price > limit_price:
                return
            if side is OrderSide.SELL and level.price < limit_price:
                return
        yield level


def _step_cost_terms(
    market: Market,
    initial_margin_fraction_override: int | None,
    side: OrderSide,
    position_quantity: int,
    step: QuantityStep,
    quantity: int,
) -> tuple[int, int]:
    """Fixed and per-unit collateral cost of filling ``quantity`` of a step.

    The whole step shares one IMF bracket. The fixed part re-margins the
    current position at that bracket's IMF, which is non-zero only when the
    step leaves the bracket the position is in.
    """
    leverage_parameters = market.leverage_parameters
    index_price = market.index_price
    direction = 1 if side is OrderSide.BUY else -1

    step_fraction = calculate_initial_margin_fraction_with_override(
        position_quantity + direction * quantity,
        initial_margin_fraction_override,
        leverage_parameters,
    )
    fixed_cost = multiply_pips(
        abs(multiply_pips(position_quantity, index_price)), step_fraction
    ) - calculate_initial_margin_requirement_of_position(
        index_price=index_price,
        initial_margin_fraction_override=initial_margin_fraction_override,
        leverage_parameters=leverage_parameters,
        position_quantity=position_quantity,
    )

    unit_cost = direction * (step.maker_order_price - index_price)
    margin_per_unit = multiply_pips(index_price, step_fraction)
    if is_reducing(position_quantity, side):
        unit_cost -= margin_per_unit
        if step.reducing_standing_order_price is not None:
            # The standing order loses as much cover as the position shrinks
            unit_cost += multiply_pips(
                step.reducing_standing_order_price,
                calculate_initial_margin_fraction_with_override(
                    0, initial_margin_fraction_override, leverage_parameters
                ),
            )
    else:
        unit_cost += margin_per_unit
    return fixed_cost, unit_cost


def _affordable_quantity(budget: int, unit_cost: int) -> int:
    if budget <= 0 or unit_cost <= 0:
        return 0
    return divide_pips(budget, unit_cost)


def _size_maker_remainder(
    market: Market,
    initial_margin_fraction_override: int | None,
    side: OrderSide,
    position_quantity: int,
    wallets_standing_orders: Iterable[StandingOrder],
    limit_price: int,
    remaining_power: int,
    remaining_base: int | None,
    remaining_quote: int | None,
) -> tuple[int, int]:
    """Base and quote quantity of the maker order resting at the limit price."""
    position = Position(
        market=market.market,
        quantity=position_quantity,
        index_price=market.index_price,
    )
    reducible_quantity = determine_maximum_reduce_only_quantity_available_at_price_level(
        limit_price, position, side, wallets_standing_orders
    )
    largest_order = calculate_maximum_maker_order_size_for_available_collateral(
        remaining_power,
        initial_margin_fraction_override,
        market.leverage_parameters,
        limit_price,
    )
    maximum_quantity = reducible_quantity + largest_order.base_quantity

    if remaining_quote is not None:
        base_quantity = divide_pips(remaining_quote, limit_price)
        if base_quantity <= maximum_quantity:
            return base_quantity, remaining_quote
        return maximum_quantity, multiply_pips(maximum_quantity, limit_price)

    base_quantity = maximum_quantity
    if remaining_base is not None:
        base_quantity = min(remaining_base, maximum_quantity)
    return base_quantity, multiply_pips(base_quantity, limit_price)


def _margin_requirement(
    market: Market,
    initial_margin_fraction_override: int | None,
    position_quantity: int,
    open_orders: list[StandingOrder],
) -> int:
    """Margin of a position plus the wallet's open orders in its market.

    Orders on the closing side cover the position best price first (ties in
    list order) and need no margin for the part they cover. Every other
    open quantity is margined at its limit price, at the IMF of its own size.
    """
    leverage_parameters = market.leverage_parameters
    requirement = calculate_initial_margin_requirement_of_position(
        index_price=market.index_price,
        initial_margin_fraction_override=initial_margin_fraction_override,
        leverage_parameters=leverage_parameters,
        position_quantity=position_quantity,
    )

    for side in OrderSide:
        uncovered = 0
        if is_reducing(position_quantity, side):
            uncovered = abs(position_quantity)
        side_orders = [order for order in open_orders if order.side is side]
        for order in sort_orders_by_best_price(side_orders):
            covered = min(order.open_quantity, uncovered)
            uncovered -= covered
            margined_quantity = order.open_quantity - covered
            if margined_quantity <= 0:
                continue
            requirement += multiply_pips(
                multiply_pips(margined_quantity, order.price),
                calculate_initial_margin_fraction_with_override(
                    margined_quantity,
                    initial_margin_fraction_override,
                    leverage_parameters,
                ),
            )
    return requirement
