import pytest

from cantinaxl.core.exceptions import ConfigurationError


def test_webhook_url(test_settings):
    assert test_settings.webhook_url == "https://shop.test/api/payments/webhook"
    test_settings.WEBHOOK_BASE_URL = ""
    assert test_settings.webhook_url == ""


def test_development_only_warns(test_settings):
    test_settings.TROPIPAY_CLIENT_ID = ""
    test_settings.SKIP_SIGNATURE_VERIFICATION = True
    test_settings.validate_for_startup()


def test_production_requires_gateway_credentials(test_settings):
    test_settings.ENVIRONMENT = "production"
    test_settings.TROPIPAY_CLIENT_SECRET = ""
    with pytest.raises(ConfigurationError):
        test_settings.validate_for_startup()


@pytest.mark.parametrize("flag", ["SKIP_SIGNATURE_VERIFICATION", "MOCK_PAYMENT"])
def test_production_refuses_bypass_flags(test_settings, flag):
    test_settings.ENVIRONMENT = "production"
    setattr(test_settings, flag, True)
    with pytest.raises(ConfigurationError):
        test_settings.validate_for_startup()


def test_production_with_credentials_starts(test_settings):
    test_settings.ENVIRONMENT = "production"
    test_settings.validate_for_startup()
