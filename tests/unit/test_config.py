"""Unit tests for configuration loading and processor config checks."""

from contribution_gateway.collaborators import UrlRouter
from contribution_gateway.config import ProcessorConfig, RoutingSettings, Settings, check_config


class TestSettings:
    """Tests for environment-driven settings."""

    def test_nested_stripe_settings_from_env(self, monkeypatch):
        """Test STRIPE__ variables populate the nested Stripe settings."""
        monkeypatch.setenv("STRIPE__SECRET_KEY", "sk_test_env")
        monkeypatch.setenv("STRIPE__TIMEOUT_SECONDS", "5")
        monkeypatch.setenv("STRIPE__LIVEMODE", "true")

        settings = Settings()

        assert settings.stripe.secret_key == "sk_test_env"
        assert settings.stripe.timeout_seconds == 5
        assert settings.stripe.livemode is True

    def test_routing_defaults(self):
        """Test retry routes default to the platform's form paths."""
        routing = RoutingSettings()

        assert routing.event_retry_route == "civicrm/event/register"
        assert routing.contribution_retry_route == "civicrm/contribute/transact"


class TestProcessorConfig:
    """Tests for ProcessorConfig."""

    def test_from_settings(self, monkeypatch):
        """Test a processor config is built from application settings."""
        monkeypatch.setenv("PROCESSOR_NAME", "mock")
        monkeypatch.setenv("STRIPE__SECRET_KEY", "sk_live_abc")
        monkeypatch.setenv("STRIPE__PUBLISHABLE_KEY", "pk_live_abc")
        monkeypatch.setenv("STRIPE__LIVEMODE", "true")

        config = ProcessorConfig.from_settings(Settings())

        assert config.name == "mock"
        assert config.secret_key == "sk_live_abc"
        assert config.publishable_key == "pk_live_abc"
        assert config.is_live is True

    def test_check_config_ok(self):
        """Test a config with both keys has no problems."""
        config = ProcessorConfig(secret_key="sk_test_1", publishable_key="pk_test_1")

        assert check_config(config) == []

    def test_check_config_missing_keys(self):
        """Test each missing key is reported."""
        problems = check_config(ProcessorConfig())

        assert len(problems) == 2
        assert '"Secret Key"' in problems[0]
        assert '"Publishable Key"' in problems[1]

    def test_processor_check_config(self, processor):
        """Test the processor reports on its own config."""
        assert processor.check_config() == []


class TestUrlRouter:
    """Tests for the default router."""

    def test_build_url(self):
        """Test the route and query are joined onto the site URL."""
        router = UrlRouter(RoutingSettings(site_base_url="https://donate.example.org/"))

        url = router.build_url("/civicrm/event/register", {"cancel": "1", "qfKey": "abc"})

        assert url == "https://donate.example.org/civicrm/event/register?cancel=1&qfKey=abc"

    def test_build_url_without_query(self, router):
        """Test no query string is added for an empty query."""
        assert router.build_url("civicrm/contribute/transact", {}) == (
            "https://donate.example.org/civicrm/contribute/transact"
        )
