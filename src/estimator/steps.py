"""Quantity step partitioner for buy/sell panel estimates.

Splits the liquidity on the maker side of the book into fill increments
("steps") such that, within one step, all of these stay constant:

- the maker price level being matched,
- the wallet's standing order that the fill makes redundant (if any),
- the IMF bracket of the wallet's position,
- the side of the wallet's position.

Standing orders only count while the taker trade reduces the open position.
They are lined up with position closure: the best-priced order covers the
part of the position closest to zero. Once the position reaches zero and
switches sides, no step has a reducing standing order anymore.
"""

from collections import deque
from collections.abc import Iterable, Iterator

from estimator.logging import get_logger
from estimator.models import (
    LeverageParameters,
    Market,
    OrderSide,
    Position,
    PriceAndSize,
    QuantityStep,
    StandingOrder,
)
from estimator.orders import (
    determine_standing_order_amounts_that_reduce_current_position,
    is_reducing,
)

logger = get_logger(__name__)


def distance_to_next_imf_threshold(
    leverage_parameters: LeverageParameters,
    directed_position_quantity: int,
) -> int | None:
    """Distance from a position to the next IMF threshold ahead of a buyer.

    Thresholds are the last position sizes at which an IMF applies when
    moving up: ``T`` on the long side and ``-(T + 1 pip)`` on the short side,
    for every bracket boundary ``T = base + k * incremental`` up to the
    maximum position size. A seller sees the mirror image, so callers pass
    the negated position for sells.

    Args:
        leverage_parameters: Market leverage schedule.
        directed_position_quantity: Signed position, negated for sells.

    Returns:
        Positive distance in pips, or None if no threshold lies ahead (past
        the maximum position size, or only the zero crossing remains).
    """
    base = leverage_parameters.base_position_size
    incremental = leverage_parameters.incremental_position_size
    maximum = leverage_parameters.maximum_position_size
    if base > maximum:
        return None
    last_increment = (maximum - base) // incremental if incremental > 0 else 0

    if directed_position_quantity >= 0:
        if directed_position_quantity < base:
            return base - directed_position_quantity
        if incremental <= 0:
            return None
        increment = (directed_position_quantity - base) // incremental + 1
        if increment > last_increment:
            return None
        return base + increment * incremental - directed_position_quantity

    position_size = -directed_position_quantity
    # Largest boundary T with -(T + 1) strictly above the position
    if position_size - 2 < base:
        return None
    increment = (
        min((position_size - 2 - base) // incremental, last_increment)
        if incremental > 0
        else 0
    )
    return position_size - (base + increment * incremental + 1)


class QuantityStepPartitioner:
    """Forward-only iterator over the fill steps of a hypothetical taker order.

    Each call to ``next`` sizes the step as the smallest of the remaining
    maker level, the remaining uncovered or standing-order portion of the
    position being closed, the distance to zero, and the distance to the next
    IMF threshold; then advances every cursor by that amount. Iteration ends
    when the maker levels run out. A partitioner cannot be restarted; build a
    new one to iterate again.

    Args:
        leverage_parameters: Market leverage schedule.
        maker_side_orders: Price levels opposite the taker, best first.
        market: Market the estimate is for; standing orders elsewhere are ignored.
        taker_side: Side of the hypothetical taker order.
        current_position: The wallet's open position in the market, if any.
        wallets_standing_orders: The wallet's resting orders (any market).
    """

    def __init__(
        self,
        leverage_parameters: LeverageParameters,
        maker_side_orders: Iterable[PriceAndSize],
        market: Market,
        taker_side: OrderSide,
        current_position: Position | None = None,
        wallets_standing_orders: Iterable[StandingOrder] = (),
    ) -> None:
        self._leverage_parameters = leverage_parameters
        self._taker_side = taker_side
        self._maker_levels: Iterator[PriceAndSize] = iter(maker_side_orders)
        self._maker_order_price = 0
        self._maker_order_remaining = 0
        self._position_quantity = current_position.quantity if current_position else 0

        reducing_amounts = determine_standing_order_amounts_that_reduce_current_position(
            market.market,
            current_position,
            taker_side,
            wallets_standing_orders,
        )
        # Traversed from the open end of the position toward zero
        self._reducing_orders: deque[tuple[int, int]] = deque(reversed(reducing_amounts))
        self._reducing_order_remaining = (
            self._reducing_orders[0][1] if self._reducing_orders else 0
        )
        # Part of the position beyond the standing orders, closed first
        self._uncovered_remaining = 0
        if reducing_amounts:
            self._uncovered_remaining = abs(self._position_quantity) - sum(
                quantity for _, quantity in reducing_amounts
            )

    def __iter__(self) -> "QuantityStepPartitioner":
        return self

    def __next__(self) -> QuantityStep:
        if not self._advance_maker_level():
            raise StopIteration

        candidates = [self._maker_order_remaining]
        reducing_standing_order_price = None

        reducing = is_reducing(self._position_quantity, self._taker_side)
        if reducing:
            candidates.append(abs(self._position_quantity))
            if self._uncovered_remaining > 0:
                candidates.append(self._uncovered_remaining)
            elif self._reducing_orders:
                candidates.append(self._reducing_order_remaining)
                reducing_standing_order_price = self._reducing_orders[0][0]

        directed_quantity = (
            self._position_quantity
            if self._taker_side is OrderSide.BUY
            else -self._position_quantity
        )
        imf_distance = distance_to_next_imf_threshold(
            self._leverage_parameters, directed_quantity
        )
        if imf_distance is not None:
            candidates.append(imf_distance)

        step = QuantityStep(
            quantity=min(candidates),
            maker_order_price=self._maker_order_price,
            reducing_standing_order_price=reducing_standing_order_price,
        )
        self._apply_step(step.quantity, reducing)

        logger.debug(
            "quantity_step_emitted",
            quantity_pips=step.quantity,
            maker_order_price_pips=step.maker_order_price,
            reducing_standing_order_price_pips=step.reducing_standing_order_price,
            position_quantity_pips=self._position_quantity,
        )
        return step

    def _advance_maker_level(self) -> bool:
        """Move to the next non-empty maker level if the current one is used up."""
        while self._maker_order_remaining <= 0:
            maker_order = next(self._maker_levels, None)
            if maker_order is None:
                return False
            self._maker_order_price = maker_order.price
            self._maker_order_remaining = maker_order.size
        return True

    def _apply_step(self, quantity: int, reducing: bool) -> None:
        self._maker_order_remaining -= quantity

        if reducing:
            if self._uncovered_remaining > 0:
                self._uncovered_remaining -= quantity
            elif self._reducing_orders:
                self._reducing_order_remaining -= quantity
                if self._reducing_order_remaining <= 0:
                    self._reducing_orders.popleft()
                    self._reducing_order_remaining = (
                        self._reducing_orders[0][1] if self._reducing_orders else 0
                    )

        if self._taker_side is OrderSide.BUY:
            self._position_quantity += quantity
        else:
            self._position_quantity -= quantity

        if self._position_quantity == 0:
            # Side switch: anything left would no longer reduce the position
            self._reducing_orders.clear()
            self._reducing_order_remaining = 0
            self._uncovered_remaining = 0


def step_through_matching_loop_quantities(
    leverage_parameters: LeverageParameters,
    maker_side_orders: Iterable[PriceAndSize],
    market: Market,
    taker_side: OrderSide,
    current_position: Position | None = None,
    wallets_standing_orders: Iterable[StandingOrder] = (),
) -> QuantityStepPartitioner:
    """Return a fresh step iterator for one buy/sell panel estimate."""
    return QuantityStepPartitioner(
        leverage_parameters=leverage_parameters,
        maker_side_orders=maker_side_orders,
        market=market,
        taker_side=taker_side,
        current_position=current_position,
        wallets_standing_orders=wallets_standing_orders,
    )
