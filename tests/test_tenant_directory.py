from unittest.mock import Mock

from sqlalchemy.exc import OperationalError

from relay_api.services.tenant_directory import TenantDirectory


class TestResolveByOrigin:
    def test_matches_domain_substring(self, session_factory, add_tenant):
        add_tenant("alpha", domain="alpha.com.au")
        add_tenant("onmore", domain="onmore.au")

        tenant = TenantDirectory(session_factory).resolve_by_origin("https://www.onmore.au")
        assert tenant.id == "onmore"

    def test_match_is_case_sensitive(self, session_factory, add_tenant):
        add_tenant("alpha", domain="alpha.com.au")
        add_tenant("onmore", domain="onmore.au")

        tenant = TenantDirectory(session_factory).resolve_by_origin("https://ONMORE.AU")
        assert tenant.id == "alpha"

    def test_falls_back_to_first_active(self, session_factory, add_tenant):
        add_tenant("alpha", domain="alpha.com.au")
        add_tenant("beta", domain="beta.com")

        tenant = TenantDirectory(session_factory).resolve_by_origin("https://unknown.example")
        assert tenant.id == "alpha"

    def test_missing_origin_uses_fallback(self, session_factory, add_tenant):
        add_tenant("alpha", domain="alpha.com.au")
        assert TenantDirectory(session_factory).resolve_by_origin(None).id == "alpha"

    def test_inactive_tenants_ignored(self, session_factory, add_tenant):
        add_tenant("old", domain="onmore.au", status="inactive")
        add_tenant("beta", domain="beta.com")

        tenant = TenantDirectory(session_factory).resolve_by_origin("https://onmore.au")
        assert tenant.id == "beta"

    def test_fallback_disabled_returns_none(self, session_factory, add_tenant):
        add_tenant("alpha", domain="alpha.com.au")
        directory = TenantDirectory(session_factory, fallback_enabled=False)
        assert directory.resolve_by_origin("https://unknown.example") is None

    def test_default_tenant_preferred_as_fallback(self, session_factory, add_tenant):
        add_tenant("alpha", domain="alpha.com.au")
        add_tenant("beta", domain="beta.com")
        directory = TenantDirectory(session_factory, default_tenant_id="beta")
        assert directory.resolve_by_origin("https://unknown.example").id == "beta"

    def test_no_tenants_returns_none(self, session_factory):
        assert TenantDirectory(session_factory).resolve_by_origin("https://x.com") is None

    def test_store_failure_returns_none(self):
        session = Mock()
        session.query.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))
        directory = TenantDirectory(lambda: session)

        assert directory.resolve_by_origin("https://onmore.au") is None
        session.close.assert_called_once()


class TestResolveByPlatformRecipient:
    def test_matches_recipient_id(self, session_factory, add_tenant):
        add_tenant("alpha", recipient_ids=["111"])
        add_tenant("onmore", recipient_ids=["222", "333"])

        tenant = TenantDirectory(session_factory).resolve_by_platform_recipient("333")
        assert tenant.id == "onmore"

    def test_unknown_recipient_falls_back(self, session_factory, add_tenant):
        add_tenant("alpha", recipient_ids=["111"])
        add_tenant("onmore", recipient_ids=["222"])

        tenant = TenantDirectory(session_factory).resolve_by_platform_recipient("999")
        assert tenant.id == "alpha"


class TestGetById:
    def test_returns_active_tenant(self, session_factory, add_tenant):
        add_tenant("alpha")
        add_tenant("onmore")
        assert TenantDirectory(session_factory).get_by_id("onmore").id == "onmore"

    def test_unknown_or_inactive_returns_none(self, session_factory, add_tenant):
        add_tenant("alpha")
        add_tenant("old", status="inactive")
        directory = TenantDirectory(session_factory)
        assert directory.get_by_id("missing") is None
        assert directory.get_by_id("old") is None


class TestTenantConfig:
    def test_config_parsed(self, session_factory, add_tenant):
        add_tenant(
            "onmore",
            domain="onmore.au",
            config={"identity": "You are Mia.", "allowedOrigins": ["https://onmore.au"]},
        )
        tenant = TenantDirectory(session_factory).resolve_by_origin("https://onmore.au")

        assert tenant.config.identity == "You are Mia."
        assert tenant.allowed_origins == ["https://onmore.au"]

    def test_invalid_config_treated_as_absent(self, session_factory, add_tenant):
        add_tenant("onmore", domain="onmore.au", config={"servicePlans": [{"price": 10}]})
        tenant = TenantDirectory(session_factory).resolve_by_origin("https://onmore.au")

        assert tenant.id == "onmore"
        assert tenant.config is None
        assert tenant.allowed_origins == []
