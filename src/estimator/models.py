"""Shared data models for the fill estimator.

CRITICAL: All prices, quantities and fractions are int pips (see pipmath).
Never use float. Instances are caller-owned snapshots; estimator functions
read them and never mutate them.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class OrderSide(str, Enum):
    """Order direction."""

    BUY = "buy"
    SELL = "sell"


@dataclass
class LeverageParameters:
    """Tiered initial margin schedule of a perpetual market.

    IMF is ``initial_margin_fraction`` up to ``base_position_size`` and grows
    by ``incremental_initial_margin_fraction`` for every (partial)
    ``incremental_position_size`` beyond it.
    """

    initial_margin_fraction: int
    incremental_initial_margin_fraction: int
    base_position_size: int
    incremental_position_size: int
    maximum_position_size: int
    maintenance_margin_fraction: int


@dataclass
class Market:
    """Market configuration snapshot."""

    market: str  # e.g., "ETH-USD"
    index_price: int
    leverage_parameters: LeverageParameters


@dataclass
class Position:
    """A wallet's open position in one market."""

    market: str
    quantity: int  # signed; negative = short
    index_price: int
    margin_requirement: int = 0


@dataclass
class StandingOrder:
    """One of the wallet's own resting orders."""

    market: str
    side: OrderSide
    original_quantity: int
    executed_quantity: int = 0
    price: int | None = None  # None for orders without a limit price

    @property
    def open_quantity(self) -> int:
        return self.original_quantity - self.executed_quantity

    @property
    def is_active(self) -> bool:
        """True for a priced order with quantity left to fill."""
        return self.price is not None and self.open_quantity > 0


@dataclass
class PriceAndSize:
    """One aggregated order book level."""

    price: int
    size: int


@dataclass
class TakerOrder:
    """Hypothetical taker order to estimate fills for."""

    side: OrderSide
    quantity: int
    is_quantity_in_quote: bool = False
    limit_price: int | None = None


@dataclass
class FillQuantities:
    """Aggregate base and quote quantities a taker order would fill."""

    base_quantity: int
    quote_quantity: int


@dataclass
class QuantityStep:
    """Fill increment with constant maker price, standing order and IMF bracket."""

    quantity: int
    maker_order_price: int
    reducing_standing_order_price: int | None = None


@dataclass
class WalletCollateral:
    """Collateral figures of a wallet as reported by the exchange."""

    free_collateral: int
    held_collateral: int
    positions: list[Position] = field(default_factory=list)

    def position_in(self, market: str) -> Position | None:
        for position in self.positions:
            if position.market == market:
                return position
        return None


@dataclass
class WalletBalances:
    """Inputs for deriving available collateral from raw balances."""

    quote_balance: int  # signed
    held_collateral: int
    positions: list[Position] = field(default_factory=list)
    standing_orders: list[StandingOrder] = field(default_factory=list)

    def position_in(self, market: str) -> Position | None:
        for position in self.positions:
            if position.market == market:
                return position
        return None


@dataclass
class InitialMarginFractionOverride:
    """A wallet's IMF override for one market (None when unset)."""

    market: str
    initial_margin_fraction_override: int | None = None
    wallet: str = ""


@dataclass
class MakerOrderSizeEstimate:
    """Largest maker order supported by a given amount of collateral."""

    base_quantity: int
    quote_quantity: int
    initial_margin_fraction: int
    initial_margin_requirement: int


@dataclass
class PanelFormInputs:
    """What the user entered in the buy/sell panel.

    Exactly one of ``desired_trade_base_quantity``,
    ``desired_trade_quote_quantity`` and ``slider_factor`` is set. Desired
    quantities are magnitudes; the side comes from ``taker_side``.
    """

    taker_side: OrderSide
    desired_trade_base_quantity: int | None = None
    desired_trade_quote_quantity: int | None = None
    slider_factor: Decimal | None = None  # share of available collateral, 0 to 1
    limit_price: int | None = None


@dataclass
class BuySellPanelEstimate:
    """Taker fill, resting maker remainder and collateral cost of a panel order."""

    taker_base_quantity: int
    taker_quote_quantity: int
    maker_base_quantity: int
    maker_quote_quantity: int
    cost: int
