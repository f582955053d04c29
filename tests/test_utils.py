"""Tests for decimal, timestamp and sanitization helpers."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation

import pytest

from trade_importer.utils.date_utils import parse_timestamp, timestamp_to_iso
from trade_importer.utils.decimal_utils import (
    eval_unit_price,
    format_amount,
    parse_decimal,
    scale_amount,
)
from trade_importer.utils.logging_config import LogContext, get_logger, mask_secrets
from trade_importer.utils.sanitize import sanitize_for_csv


class TestDecimalUtils:
    """Tests for decimal helpers."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("1,234.50", Decimal("1234.50")),
            (0.1, Decimal("0.1")),
            (7, Decimal("7")),
            ("", None),
            (None, None),
        ],
    )
    def test_parse_decimal(self, raw: object, expected: Decimal | None) -> None:
        assert parse_decimal(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", True])
    def test_parse_decimal_invalid(self, raw: object) -> None:
        with pytest.raises(ValueError):
            parse_decimal(raw)

    def test_scale_amount_half_up(self) -> None:
        """Test the fixed 8-place half-up rounding."""
        assert str(scale_amount(Decimal("0.000000005"))) == "1E-8"
        assert str(scale_amount(Decimal("2.5"))) == "2.50000000"
        assert str(scale_amount(Decimal("-0.123456785"))) == "-0.12345679"

    def test_scale_amount_overflow(self) -> None:
        """Test that amounts beyond the decimal precision cannot be scaled."""
        with pytest.raises(InvalidOperation):
            scale_amount(Decimal("1E+25"))

    def test_eval_unit_price(self) -> None:
        assert eval_unit_price(Decimal("10"), Decimal("4")) == Decimal("2.5")
        assert eval_unit_price(Decimal("10"), Decimal("0")) is None
        assert eval_unit_price(None, Decimal("1")) is None

    def test_format_amount_has_no_exponent(self) -> None:
        assert format_amount(Decimal("1E-8")) == "0.00000001"
        assert format_amount(None) == ""


class TestDateUtils:
    """Tests for timestamp parsing."""

    @pytest.mark.parametrize(
        "raw",
        [
            "2024-01-15T10:30:00Z",
            "2024-01-15T11:30:00+01:00",
            1705314600,
            1705314600000,
            "1705314600",
            datetime(2024, 1, 15, 10, 30),
        ],
    )
    def test_parse_timestamp_to_utc(self, raw: object) -> None:
        assert parse_timestamp(raw) == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize("raw", [None, "", "yesterday"])
    def test_parse_timestamp_invalid(self, raw: object) -> None:
        with pytest.raises(ValueError):
            parse_timestamp(raw)

    def test_timestamp_to_iso(self) -> None:
        value = datetime(2024, 1, 15, 11, 30, tzinfo=timezone(timedelta(hours=1)))

        assert timestamp_to_iso(value) == "2024-01-15T10:30:00Z"
        assert timestamp_to_iso(None) == ""


class TestSanitize:
    """Tests for CSV sanitization."""

    @pytest.mark.parametrize("raw", ["=SUM(A1)", "+1", "-2", "@cmd", "|pipe"])
    def test_formula_prefixed(self, raw: str) -> None:
        assert sanitize_for_csv(raw) == "'" + raw

    def test_newlines_flattened(self) -> None:
        assert sanitize_for_csv("line1\nline2") == "line1 line2"

    def test_plain_and_none(self) -> None:
        assert sanitize_for_csv("t1") == "t1"
        assert sanitize_for_csv(None) is None


class TestLogging:
    """Tests for credential masking in log output."""

    def test_mask_secrets(self) -> None:
        """Test masking of credential keys in any naming style."""
        masked = mask_secrets({
            "apiKey": "k", "api_secret": "s", "PASSPHRASE": "p", "connector": "bittrexApiConnector",
        })

        assert masked == {
            "apiKey": "***", "api_secret": "***", "PASSPHRASE": "***", "connector": "bittrexApiConnector",
        }

    def test_log_context_reports_failure_once(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that a failing operation is logged once and re-raised."""
        logger = get_logger("tests.log_context")

        with caplog.at_level("DEBUG", logger="trade_importer"):
            with pytest.raises(RuntimeError):
                with LogContext(logger, "download", apiSecret="hunter2"):
                    raise RuntimeError("boom")

        assert "hunter2" not in caplog.text
        errors = [r for r in caplog.records if r.levelname == "ERROR"]
        assert len(errors) == 1
        assert "download failed" in errors[0].getMessage()
        assert errors[0].exc_info is not None
