"""Standing order selection shared by the step partitioner and reduce-only checks."""

from collections.abc import Iterable

from estimator.models import OrderSide, Position, StandingOrder


def best_price_sort_key(order: StandingOrder) -> tuple[int, int]:
    """Sort key putting buys first, then the best price first within a side.

    Higher is better for buys, lower is better for sells.
    """
    price = order.price or 0
    if order.side is OrderSide.BUY:
        return (0, -price)
    return (1, price)


def sort_orders_by_best_price(orders: Iterable[StandingOrder]) -> list[StandingOrder]:
    """Return the orders sorted by best price; ties keep their input order."""
    return sorted(orders, key=best_price_sort_key)


def filter_active_orders(
    orders: Iterable[StandingOrder],
    market: str,
    side: OrderSide,
) -> list[StandingOrder]:
    """Active orders (priced, with open quantity) in a market on one side."""
    return [
        order
        for order in orders
        if order.market == market and order.side is side and order.is_active
    ]


def is_reducing(position_quantity: int, side: OrderSide) -> bool:
    """True if trading ``side`` shrinks a position of the given signed size."""
    if position_quantity > 0:
        return side is OrderSide.SELL
    if position_quantity < 0:
        return side is OrderSide.BUY
    return False


def determine_standing_order_amounts_that_reduce_current_position(
    market: str,
    current_position: Position | None,
    taker_side: OrderSide,
    wallets_standing_orders: Iterable[StandingOrder],
) -> list[tuple[int, int]]:
    """Standing order amounts that close the position, best price first.

    Only applies while a taker trade on ``taker_side`` reduces the position.
    The wallet's active orders in ``market`` on the closing side are taken
    best price first until their open quantities add up to the position size;
    the last one is cut to fit.

    Returns:
        ``(price, quantity)`` pairs; the first pair covers the part of the
        position closest to zero.
    """
    if current_position is None or not is_reducing(
        current_position.quantity, taker_side
    ):
        return []

    closing_side = OrderSide.SELL if current_position.quantity > 0 else OrderSide.BUY
    closing_orders = sort_orders_by_best_price(
        filter_active_orders(wallets_standing_orders, market, closing_side)
    )

    remaining_position_size = abs(current_position.quantity)
    amounts: list[tuple[int, int]] = []
    for order in closing_orders:
        if remaining_position_size <= 0:
            break
        quantity = min(order.open_quantity, remaining_position_size)
        amounts.append((order.price, quantity))
        remaining_position_size -= quantity
    return amounts
