import pytest

from config.log_config import MASK, build_logging_config, mask_sensitive_data

pytestmark = pytest.mark.unit


class TestMaskSensitiveData:
    def test_password_value_masked_key_kept(self):
        result = mask_sensitive_data(None, None, {"data": "password='s3cret123'"})
        assert "s3cret123" not in result["data"]
        assert result["data"].startswith("password=")
        assert MASK in result["data"]

    def test_authorization_header_masked(self):
        result = mask_sensitive_data(
            None, None, {"header": "authorization: Bearer.abc.def"}
        )
        assert "Bearer.abc.def" not in result["header"]

    def test_barcodes_and_vouchers_untouched(self):
        event = {
            "event": "order.item_adjusted",
            "product_code": "7891000100103",
            "voucher_number": "V-0001",
        }
        result = mask_sensitive_data(None, None, dict(event))
        assert result == event

    def test_non_string_values_untouched(self):
        assert mask_sensitive_data(None, None, {"delta": 1})["delta"] == 1


class TestBuildLoggingConfig:
    def test_json_renderer_by_default(self):
        formatter = build_logging_config()["formatters"]["structured"]
        assert type(formatter["processors"][-1]).__name__ == "JSONRenderer"

    def test_console_renderer_for_development(self):
        formatter = build_logging_config(json_output=False)["formatters"]["structured"]
        assert type(formatter["processors"][-1]).__name__ == "ConsoleRenderer"

    def test_level_applies_to_root_and_django(self):
        cfg = build_logging_config(level="DEBUG")
        assert cfg["root"]["level"] == "DEBUG"
        assert cfg["loggers"]["django"]["level"] == "DEBUG"
        assert cfg["loggers"]["django.db.backends"]["level"] == "WARNING"
