"""Tests for settings loading and structured log rendering."""

import json
import logging

import pytest
import structlog
from pydantic import ValidationError

from estimator.config import AppSettings, EstimatorSettings
from estimator.logging import render_pip_amounts, setup_logging
from estimator.models import Market, OrderSide, PriceAndSize
from estimator.pipmath import decimal_to_pip
from estimator.steps import step_through_matching_loop_quantities


class TestSettings:
    def test_defaults(self) -> None:
        settings = AppSettings()
        assert settings.log_level == "INFO"
        assert settings.log_format == "console"
        assert settings.estimator.use_double_pip_precision is False
        assert settings.estimator.max_estimate_steps == 10000

    def test_estimator_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ESTIMATOR_USE_DOUBLE_PIP_PRECISION", "true")
        monkeypatch.setenv("ESTIMATOR_MAX_ESTIMATE_STEPS", "250")
        settings = EstimatorSettings()
        assert settings.use_double_pip_precision is True
        assert settings.max_estimate_steps == 250

    def test_step_limit_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            EstimatorSettings(max_estimate_steps=0)

    def test_unknown_log_format(self) -> None:
        with pytest.raises(ValidationError):
            AppSettings(log_format="xml")


class TestRenderPipAmounts:
    def test_pip_keys_become_decimal_strings(self) -> None:
        event_dict = {
            "event": "quantity_step_emitted",
            "quantity_pips": 150_000_000,
            "reducing_standing_order_price_pips": None,
            "market": "FOO-USD",
        }
        assert render_pip_amounts(None, "debug", event_dict) == {
            "event": "quantity_step_emitted",
            "quantity": "1.50000000",
            "reducing_standing_order_price": None,
            "market": "FOO-USD",
        }

    def test_other_keys_untouched(self) -> None:
        event_dict = {"event": "x", "pips": 5, "max_estimate_steps": 10}
        assert render_pip_amounts(None, "info", event_dict) == {
            "event": "x",
            "pips": 5,
            "max_estimate_steps": 10,
        }


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def _restore_logging(self):
        yield
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()

    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(AppSettings(log_format="json"))
        structlog.get_logger("estimator.test").info(
            "fill_estimated", base_quantity_pips=250_000_000
        )

        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "fill_estimated"
        assert record["base_quantity"] == "2.50000000"
        assert record["level"] == "info"
        assert record["logger"] == "estimator.test"

    def test_level_from_settings(self) -> None:
        setup_logging(AppSettings(log_level="warning"))
        assert logging.getLogger().level == logging.WARNING


class TestWithoutSetup:
    @pytest.fixture(autouse=True)
    def _package_defaults(self):
        structlog.reset_defaults()
        yield
        structlog.reset_defaults()

    def test_partitioner_run_keeps_stdout_clean(
        self,
        foo_market: Market,
        capsys: pytest.CaptureFixture[str],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        caplog.set_level(logging.DEBUG, logger="estimator.steps")
        book = [PriceAndSize(price=decimal_to_pip("1"), size=decimal_to_pip("1500"))]
        steps = list(
            step_through_matching_loop_quantities(
                foo_market.leverage_parameters, book, foo_market, OrderSide.BUY
            )
        )

        assert len(steps) == 6
        assert capsys.readouterr().out == ""
        assert "quantity_step_emitted" in caplog.text
