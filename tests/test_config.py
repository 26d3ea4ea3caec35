"""
Tests for settings models and the settings repository.
"""

import json

import pytest
from pydantic import ValidationError

from chainresync.domain import AccessMethod, GatewaySettings, WinRMSettings
from chainresync.infrastructure.config import SettingsRepository


class TestGatewaySettings:
    """Settings validation."""

    def test_defaults(self):
        settings = GatewaySettings()
        assert settings.default_method == AccessMethod.MANAGEMENT_QUERY
        assert settings.timeout_seconds == 60
        assert settings.max_workers == 8
        assert settings.winrm.port_http == 5985

    @pytest.mark.parametrize("field,value", [("timeout_seconds", 0), ("max_workers", 0)])
    def test_rejects_non_positive(self, field, value):
        with pytest.raises(ValidationError):
            GatewaySettings(**{field: value})

    def test_method_from_string(self):
        assert GatewaySettings(default_method="remote_exec").default_method == AccessMethod.REMOTE_EXEC

    def test_winrm_port_range(self):
        with pytest.raises(ValidationError):
            WinRMSettings(port_http=70000)

    def test_winrm_endpoint(self):
        assert WinRMSettings().endpoint("srv01") == "http://srv01:5985/wsman"
        assert WinRMSettings(use_ssl=True, port_https=443).endpoint("srv01") == "https://srv01:443/wsman"


class TestSettingsRepository:
    """Loading settings from disk."""

    def test_missing_file_gives_defaults(self, tmp_path):
        settings = SettingsRepository(tmp_path / "absent.json").load()
        assert settings == GatewaySettings()

    def test_load_file(self, tmp_path):
        path = tmp_path / "chainresync.json"
        path.write_text(json.dumps({
            "default_method": "direct",
            "timeout_seconds": 15,
            "winrm": {"use_ssl": True, "verify_ssl": False},
            "unknown_key": "ignored",
        }), encoding="utf-8")
        settings = SettingsRepository(path).load()
        assert settings.default_method == AccessMethod.DIRECT
        assert settings.timeout_seconds == 15
        assert settings.winrm.use_ssl is True
        assert settings.winrm.verify_ssl is False

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "chainresync.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid JSON"):
            SettingsRepository(path).load()

    def test_invalid_schema(self, tmp_path):
        path = tmp_path / "chainresync.json"
        path.write_text(json.dumps({"default_method": "telnet"}), encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid settings"):
            SettingsRepository(path).load()

    def test_non_object_document(self, tmp_path):
        path = tmp_path / "chainresync.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(ValueError, match="JSON object"):
            SettingsRepository(path).load()

    def test_save_then_load(self, tmp_path):
        repository = SettingsRepository(tmp_path / "nested" / "chainresync.json")
        original = GatewaySettings(default_method=AccessMethod.REMOTE_EXEC, max_workers=3)
        repository.save(original)
        assert repository.load() == original

    def test_default_path_is_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert SettingsRepository().path == tmp_path / "chainresync.json"
