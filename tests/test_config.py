"""Tests for imap_eml.config."""

from __future__ import annotations

from datetime import date

from pydantic import SecretStr

from imap_eml.config import DownloadConfig, ImapConfig


class TestImapConfig:
    def test_defaults(self):
        cfg = ImapConfig(host="imap.test.com", username="u", password="p")
        assert cfg.port == 993
        assert cfg.use_ssl is True

    def test_password_is_secret(self):
        cfg = ImapConfig(host="h", username="u", password="hunter2")
        assert isinstance(cfg.password, SecretStr)
        assert "hunter2" not in repr(cfg)
        assert cfg.password.get_secret_value() == "hunter2"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("IMAP_HOST", "env-imap.example.com")
        monkeypatch.setenv("IMAP_PORT", "143")
        monkeypatch.setenv("IMAP_USE_SSL", "false")
        monkeypatch.setenv("IMAP_USERNAME", "envuser")
        monkeypatch.setenv("IMAP_PASSWORD", "envpass")
        cfg = ImapConfig()
        assert cfg.host == "env-imap.example.com"
        assert cfg.port == 143
        assert cfg.use_ssl is False


class TestDownloadConfig:
    def test_defaults(self):
        cfg = DownloadConfig()
        assert cfg.mailbox == "INBOX"
        assert cfg.uid == ""
        assert cfg.output_to_binary is True
        assert cfg.binary_property_name == "data"
        assert cfg.output_dir == "."

    def test_minimal_parameters(self):
        assert DownloadConfig().to_parameters() == {
            "mailboxPath": "INBOX",
            "emailUid": "",
            "outputToBinary": True,
            "binaryPropertyName": "data",
        }

    def test_search_parameters(self):
        cfg = DownloadConfig(
            since=date(2025, 1, 1),
            subject="invoice",
            seen=False,
        )
        params = cfg.to_parameters()
        assert params["emailDateRange"] == {"since": date(2025, 1, 1)}
        assert params["emailSubject"] == "invoice"
        assert params["emailFlags"] == {"seen": False}
        assert "emailFrom" not in params

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DOWNLOAD_MAILBOX", "Archive")
        monkeypatch.setenv("DOWNLOAD_UID", "42")
        monkeypatch.setenv("DOWNLOAD_OUTPUT_TO_BINARY", "false")
        monkeypatch.setenv("DOWNLOAD_BEFORE", "2025-02-01")
        cfg = DownloadConfig()
        assert cfg.mailbox == "Archive"
        assert cfg.uid == "42"
        assert cfg.output_to_binary is False
        assert cfg.before == date(2025, 2, 1)
