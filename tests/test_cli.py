"""Tests for the kit-session command line."""

from __future__ import annotations

import asyncio
import datetime
import pathlib
from unittest.mock import MagicMock, patch

import pytest

from kit_session.codec.cookie_codec import encode
from kit_session.crypto.cipher import default_cipher
from kit_session.main import load_config, main
from kit_session.session.data import SessionData

SETTINGS = (
    "session:\n"
    "  expires: 2\n"
    "  secret:\n"
    "    - {id: 2, secret: new}\n"
    "    - {id: 1, secret: old}\n"
)


@pytest.fixture
def settings_path(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "settings.yaml"
    path.write_text(SETTINGS)
    return path


class TestLoadConfig:
    def test_secure_follows_app_env(self, settings_path: pathlib.Path) -> None:
        assert load_config(settings_path, {"APP_ENV": "production"}).cookie.secure is True
        assert load_config(settings_path, {"APP_ENV": "development"}).cookie.secure is False
        assert load_config(settings_path, {}).cookie.secure is False

    @patch("kit_session.main.VaultSecretSource")
    def test_secrets_from_vault_when_absent(self, mock_source_cls: MagicMock, tmp_path: pathlib.Path) -> None:
        mock_source_cls.return_value.load.return_value = [{"id": 9, "secret": "from-vault"}]
        path = tmp_path / "settings.yaml"
        path.write_text(
            "session:\n"
            "  expires: 1\n"
            "  cookie: {sameSite: strict}\n"
            "vault:\n"
            "  address: http://vault:8200\n"
            "  path: app/session\n"
        )

        config = load_config(path, {"VAULT_TOKEN": "s.token"})

        mock_source_cls.assert_called_once_with(
            vault_addr="http://vault:8200",
            token="s.token",
            mount_point="secret",
            path="app/session",
        )
        assert config.secrets.ids() == [9]
        assert config.cookie.same_site == "strict"
        assert config.expires_in_days == 1

    @patch("kit_session.main.VaultSecretSource")
    def test_inline_secret_skips_vault(self, mock_source_cls: MagicMock, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text(SETTINGS + "vault:\n  address: http://vault:8200\n")
        load_config(path, {})
        mock_source_cls.assert_not_called()


class TestMain:
    def test_keygen(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["keygen", "--bytes", "16"]) == 0
        assert "New session secret" in capsys.readouterr().out

    def test_show_config(self, settings_path: pathlib.Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--config", str(settings_path), "show-config"]) == 0
        assert "kit.session" in capsys.readouterr().out

    def test_missing_config(self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--config", str(tmp_path / "nope.yaml"), "show-config"]) == 2
        assert "not found" in capsys.readouterr().out

    def test_encode(self, settings_path: pathlib.Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--config", str(settings_path), "encode", "--data", '{"user": "alice"}']) == 0
        assert "Set-Cookie" in capsys.readouterr().out

    def test_encode_rejects_non_object(self, settings_path: pathlib.Path) -> None:
        assert main(["--config", str(settings_path), "encode", "--data", "[1, 2]"]) == 2

    def test_inspect_valid_cookie(self, settings_path: pathlib.Path, capsys: pytest.CaptureFixture[str]) -> None:
        config = load_config(settings_path, {})
        expires = datetime.datetime.now(datetime.UTC) + datetime.timedelta(hours=1)
        value = asyncio.run(
            encode(SessionData.build({"user": "alice"}, expires), config.secrets, default_cipher())
        )

        assert main(["--config", str(settings_path), "inspect", value]) == 0
        out = capsys.readouterr().out
        assert "alice" in out
        assert "Tagged secret id" in out

    def test_inspect_garbage(self, settings_path: pathlib.Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--config", str(settings_path), "inspect", "garbage&id=2"]) == 1
        assert "could not be decoded" in capsys.readouterr().out

    def test_inspect_empty(self, settings_path: pathlib.Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--config", str(settings_path), "inspect", "0"]) == 0
        assert "no session" in capsys.readouterr().out
