"""Fill and margin estimates for leveraged perpetual-futures order entry.

Pure, synchronous computations over caller-supplied snapshots: tiered
initial margin fractions, order book fill simulation, quantity step
partitioning and reduce-only sizing. All amounts are int pips.
"""

from estimator.fills import calculate_gross_fill_quantities
from estimator.leverage import (
    calculate_available_collateral,
    calculate_initial_margin_fraction_with_override,
    calculate_initial_margin_requirement_of_position,
    calculate_maximum_initial_margin_fraction_override,
    calculate_maximum_maker_order_size_for_available_collateral,
    calculate_notional_quote_value_of_positions,
)
from estimator.models import (
    BuySellPanelEstimate,
    FillQuantities,
    InitialMarginFractionOverride,
    LeverageParameters,
    MakerOrderSizeEstimate,
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
from estimator.panel import BracketStepEstimate, BuySellPanelEstimator, FillEstimate
from estimator.reduce_only import (
    determine_maximum_reduce_only_quantity_available_at_price_level,
)
from estimator.steps import QuantityStepPartitioner, step_through_matching_loop_quantities

__all__ = [
    "BracketStepEstimate",
    "BuySellPanelEstimate",
    "BuySellPanelEstimator",
    "FillEstimate",
    "FillQuantities",
    "InitialMarginFractionOverride",
    "LeverageParameters",
    "MakerOrderSizeEstimate",
    "Market",
    "OrderSide",
    "PanelFormInputs",
    "Position",
    "PriceAndSize",
    "QuantityStep",
    "QuantityStepPartitioner",
    "StandingOrder",
    "TakerOrder",
    "WalletBalances",
    "WalletCollateral",
    "calculate_available_collateral",
    "calculate_gross_fill_quantities",
    "calculate_initial_margin_fraction_with_override",
    "calculate_initial_margin_requirement_of_position",
    "calculate_maximum_initial_margin_fraction_override",
    "calculate_maximum_maker_order_size_for_available_collateral",
    "calculate_notional_quote_value_of_positions",
    "determine_maximum_reduce_only_quantity_available_at_price_level",
    "step_through_matching_loop_quantities",
]
