"""Shared test fixtures for the fill estimator."""

import pytest

from estimator.config import AppSettings, EstimatorSettings
from estimator.models import LeverageParameters, Market
from estimator.pipmath import decimal_to_pip


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults."""
    return AppSettings(
        log_level="DEBUG",
        estimator=EstimatorSettings(use_double_pip_precision=False),
    )


@pytest.fixture
def leverage_parameters() -> LeverageParameters:
    """Schedule with brackets every 100 above 1000: 3% IMF, +1% per bracket."""
    return LeverageParameters(
        initial_margin_fraction=decimal_to_pip("0.03"),
        incremental_initial_margin_fraction=decimal_to_pip("0.01"),
        base_position_size=decimal_to_pip("1000"),
        incremental_position_size=decimal_to_pip("100"),
        maximum_position_size=decimal_to_pip("100000"),
        maintenance_margin_fraction=decimal_to_pip("0.01"),
    )


@pytest.fixture
def foo_market(leverage_parameters: LeverageParameters) -> Market:
    """FOO-USD market at index price 1 using the default leverage schedule."""
    return Market(
        market="FOO-USD",
        index_price=decimal_to_pip("1"),
        leverage_parameters=leverage_parameters,
    )
