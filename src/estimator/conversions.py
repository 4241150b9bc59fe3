"""Conversion of exchange REST/WebSocket snapshots into estimator models.

Snapshots arrive as dicts with camelCase keys and decimal strings
("0.03000000"). Every numeric field is converted to pips here, at the
boundary; the estimator core only ever sees int pips.
"""

from collections.abc import Mapping
from typing import Any

from estimator.exceptions import (
    InvalidAmountError,
    InvalidLeverageParametersError,
    SnapshotConversionError,
)
from estimator.models import (
    InitialMarginFractionOverride,
    LeverageParameters,
    Market,
    OrderSide,
    Position,
    PriceAndSize,
    StandingOrder,
    WalletCollateral,
)
from estimator.pipmath import decimal_to_pip


def _require(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError as exc:
        raise SnapshotConversionError(f"Snapshot is missing '{key}'") from exc


def _pips(data: Mapping[str, Any], key: str) -> int:
    try:
        return decimal_to_pip(str(_require(data, key)))
    except InvalidAmountError as exc:
        raise SnapshotConversionError(f"Invalid amount for '{key}': {exc}") from exc


def _optional_pips(data: Mapping[str, Any], key: str) -> int | None:
    if data.get(key) in (None, ""):
        return None
    return _pips(data, key)


def convert_to_leverage_parameters(data: Mapping[str, Any]) -> LeverageParameters:
    """Build a leverage schedule from a market snapshot.

    Raises:
        SnapshotConversionError: If a field is missing or not a number.
        InvalidLeverageParametersError: If the schedule defines no brackets.
    """
    leverage_parameters = LeverageParameters(
        initial_margin_fraction=_pips(data, "initialMarginFraction"),
        incremental_initial_margin_fraction=_pips(
            data, "incrementalInitialMarginFraction"
        ),
        base_position_size=_pips(data, "basePositionSize"),
        incremental_position_size=_pips(data, "incrementalPositionSize"),
        maximum_position_size=_pips(data, "maximumPositionSize"),
        maintenance_margin_fraction=_pips(data, "maintenanceMarginFraction"),
    )
    if leverage_parameters.incremental_position_size <= 0:
        raise InvalidLeverageParametersError(
            "incrementalPositionSize must be positive"
        )
    if min(
        leverage_parameters.initial_margin_fraction,
        leverage_parameters.incremental_initial_margin_fraction,
        leverage_parameters.base_position_size,
        leverage_parameters.maximum_position_size,
    ) < 0:
        raise InvalidLeverageParametersError("Leverage parameters must not be negative")
    return leverage_parameters


def convert_to_market(data: Mapping[str, Any]) -> Market:
    """Build a market (symbol, index price, leverage schedule) from a snapshot."""
    return Market(
        market=_require(data, "market"),
        index_price=_pips(data, "indexPrice"),
        leverage_parameters=convert_to_leverage_parameters(data),
    )


def convert_to_position(data: Mapping[str, Any]) -> Position:
    """Build a position from a snapshot; an empty margin requirement is zero."""
    return Position(
        market=_require(data, "market"),
        quantity=_pips(data, "quantity"),
        index_price=_pips(data, "indexPrice"),
        margin_requirement=_optional_pips(data, "marginRequirement") or 0,
    )


def convert_to_standing_order(data: Mapping[str, Any]) -> StandingOrder:
    """Build a standing order; market orders have no price."""
    try:
        side = OrderSide(_require(data, "side"))
    except ValueError as exc:
        raise SnapshotConversionError(f"Invalid order side: {data['side']!r}") from exc
    return StandingOrder(
        market=_require(data, "market"),
        side=side,
        original_quantity=_pips(data, "originalQuantity"),
        executed_quantity=_optional_pips(data, "executedQuantity") or 0,
        price=_optional_pips(data, "price"),
    )


def convert_to_price_and_size(data: Mapping[str, Any]) -> PriceAndSize:
    """Build a maker level from an order book level snapshot."""
    return PriceAndSize(price=_pips(data, "price"), size=_pips(data, "size"))


def convert_to_wallet_collateral(data: Mapping[str, Any]) -> WalletCollateral:
    """Build wallet collateral figures, including any open positions."""
    return WalletCollateral(
        free_collateral=_pips(data, "freeCollateral"),
        held_collateral=_pips(data, "heldCollateral"),
        positions=[convert_to_position(p) for p in data.get("positions") or []],
    )


def convert_to_initial_margin_fraction_override(
    data: Mapping[str, Any],
) -> InitialMarginFractionOverride:
    """Build a wallet's IMF override for one market (None when unset)."""
    return InitialMarginFractionOverride(
        market=_require(data, "market"),
        initial_margin_fraction_override=_optional_pips(
            data, "initialMarginFractionOverride"
        ),
        wallet=data.get("wallet", ""),
    )
