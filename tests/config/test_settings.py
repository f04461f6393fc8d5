"""Tests for AgentGateSettings."""

import pytest
from pydantic import ValidationError

from agentgate.config.settings import PROXY_TIMEOUT_MARGIN, AgentGateSettings


class TestTimeouts:
    def test_proxy_timeout_follows_permission_timeout(self):
        settings = AgentGateSettings(permission_timeout=120)
        assert settings.proxy_timeout == 120 + PROXY_TIMEOUT_MARGIN

    def test_default_proxy_timeout_exceeds_default_deadline(self):
        settings = AgentGateSettings(permission_timeout=60)
        assert settings.proxy_timeout == 65

    def test_explicit_proxy_timeout_kept(self):
        assert AgentGateSettings(permission_timeout=60, proxy_timeout=90).proxy_timeout == 90

    @pytest.mark.parametrize("proxy_timeout", [30, 60])
    def test_proxy_timeout_not_above_deadline_rejected(self, proxy_timeout):
        with pytest.raises(ValidationError, match="must exceed permission_timeout"):
            AgentGateSettings(permission_timeout=60, proxy_timeout=proxy_timeout)

    def test_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("AGENTGATE_PERMISSION_TIMEOUT", "120")
        assert AgentGateSettings().proxy_timeout == 125
