"""Reduce-only order sizing."""

from collections.abc import Iterable

from estimator.models import OrderSide, Position, StandingOrder
from estimator.orders import filter_active_orders, is_reducing


def determine_maximum_reduce_only_quantity_available_at_price_level(
    limit_price: int,
    position: Position,
    order_side: OrderSide,
    wallets_standing_orders: Iterable[StandingOrder],
) -> int:
    """How much reduce-only quantity can still be placed at a limit price.

    Standing orders on the same side and market at a price at least as
    favorable as ``limit_price`` (sells at or below it for a long, buys at or
    above it for a short) fill first, so their open quantity is reserved
    against the position.

    Args:
        limit_price: Limit price of the prospective reduce-only order.
        position: The wallet's position in the order's market.
        order_side: Side of the prospective order.
        wallets_standing_orders: The wallet's resting orders (any market).

    Returns:
        Available quantity in pips; zero for a flat position or a side that
        would increase the position.
    """
    if not is_reducing(position.quantity, order_side):
        return 0

    same_side_orders = filter_active_orders(
        wallets_standing_orders, position.market, order_side
    )
    if order_side is OrderSide.SELL:
        reserved_orders = [o for o in same_side_orders if o.price <= limit_price]
    else:
        reserved_orders = [o for o in same_side_orders if o.price >= limit_price]

    available = abs(position.quantity) - sum(
        order.open_quantity for order in reserved_orders
    )
    return max(available, 0)
