"""Order book walk-through fill simulation.

Estimates the gross base and quote quantities a taker order would fill
against maker-side price levels, given best-first.
"""

from collections.abc import Iterable

from estimator.logging import get_logger
from estimator.models import FillQuantities, OrderSide, PriceAndSize, TakerOrder
from estimator.pipmath import ONE_IN_DOUBLE_PIPS, ONE_IN_PIPS, pips_to_double_pips

logger = get_logger(__name__)


def _is_price_beyond_limit(taker_order: TakerOrder, level_price: int) -> bool:
    if taker_order.limit_price is None:
        return False
    if taker_order.side is OrderSide.BUY:
        return level_price > taker_order.limit_price
    return level_price < taker_order.limit_price


def calculate_gross_fill_quantities(
    maker_side_orders: Iterable[PriceAndSize],
    taker_order: TakerOrder,
    use_double_pip_precision: bool = False,
) -> FillQuantities:
    """Walk maker levels until the taker's demand or its limit price is reached.

    For a quantity in base, each level contributes ``min(remaining, size)``
    base and that amount times the level price in quote. For a quantity in
    quote, each level contributes ``min(remaining, size * price)`` quote and
    that amount divided by the level price in base.

    With ``use_double_pip_precision`` all inputs are lifted to the 16-digit
    scale, so quote-to-base divisions keep 8 more digits. The returned
    quantities are then double pips as well; rescale them with
    ``pipmath.double_pips_to_pips``.

    Args:
        maker_side_orders: Price levels opposite the taker, best first.
        taker_order: Side, quantity (base or quote) and optional limit price.
        use_double_pip_precision: Compute and return at the double-pip scale.

    Returns:
        Gross base and quote quantities that would fill.
    """
    if use_double_pip_precision:
        scale = ONE_IN_DOUBLE_PIPS
        lift = pips_to_double_pips
    else:
        scale = ONE_IN_PIPS

        def lift(pips: int) -> int:
            return pips

    remaining = lift(taker_order.quantity)
    base_quantity = 0
    quote_quantity = 0

    for maker_order in maker_side_orders:
        if remaining <= 0 or _is_price_beyond_limit(taker_order, maker_order.price):
            break

        price = lift(maker_order.price)
        size = lift(maker_order.size)

        if taker_order.is_quantity_in_quote:
            trade_quote = min(remaining, size * price // scale)
            trade_base = trade_quote * scale // price if price > 0 else 0
            remaining -= trade_quote
        else:
            trade_base = min(remaining, size)
            trade_quote = trade_base * price // scale
            remaining -= trade_base

        base_quantity += trade_base
        quote_quantity += trade_quote

    logger.debug(
        "gross_fill_computed",
        side=taker_order.side.value,
        is_quantity_in_quote=taker_order.is_quantity_in_quote,
        use_double_pip_precision=use_double_pip_precision,
        base_quantity=str(base_quantity),
        quote_quantity=str(quote_quantity),
    )
    return FillQuantities(base_quantity=base_quantity, quote_quantity=quote_quantity)
