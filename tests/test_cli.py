"""Tests for the gdrive-lite CLI."""

import json
from unittest.mock import patch

import pytest

from gdrive_lite import cli
from gdrive_lite.google import TokenStore


@pytest.fixture
def config_dir(tmp_path):
    """Point every config path at a temporary directory."""
    with (
        patch("gdrive_lite.config.CONFIG_DIR", tmp_path),
        patch("gdrive_lite.config.GOOGLE_CREDENTIALS", tmp_path / "credentials.json"),
        patch("gdrive_lite.config.GOOGLE_TOKEN", tmp_path / "token.json"),
        patch("gdrive_lite.google.oauth.GOOGLE_CREDENTIALS", tmp_path / "credentials.json"),
        patch("gdrive_lite.google.oauth.GOOGLE_TOKEN", tmp_path / "token.json"),
    ):
        yield tmp_path


@pytest.fixture
def credentials_file(tmp_path):
    path = tmp_path / "downloaded.json"
    path.write_text(
        json.dumps({"installed": {"client_id": "cli-client", "client_secret": "cli-secret"}})
    )
    return path


def test_parse_scopes():
    assert cli.parse_scopes(None) == ["drive"]
    assert cli.parse_scopes("drive, drive_file") == ["drive", "drive_file"]


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "gdrive-lite" in capsys.readouterr().out


def test_import_credentials(config_dir, credentials_file, capsys):
    assert cli.main(["auth", "import", str(credentials_file)]) == 0
    assert json.loads((config_dir / "credentials.json").read_text())["installed"]
    assert "cli-client" in capsys.readouterr().out


def test_import_rejects_unknown_format(config_dir, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"type": "service_account"}))
    assert cli.main(["auth", "import", str(bad)]) == 1


def test_auth_status_without_credentials(config_dir, capsys):
    assert cli.main(["auth", "status"]) == 1
    assert "gdrive-lite init" in capsys.readouterr().out


def test_auth_status_without_token(config_dir, credentials_file, capsys):
    cli.main(["auth", "import", str(credentials_file)])
    assert cli.main(["auth", "status"]) == 1
    assert "No token found" in capsys.readouterr().out


def test_auth_status_with_token(config_dir, credentials_file, valid_record, capsys):
    cli.main(["auth", "import", str(credentials_file)])
    valid_record.expires_at = valid_record.expires_at.replace(year=2099)
    TokenStore(config_dir / "token.json", client_id="cli-client").save(valid_record)

    assert cli.main(["auth", "status"]) == 0
    out = capsys.readouterr().out
    assert "valid" in out
    assert "https://www.googleapis.com/auth/drive" in out


def test_drive_delete(config_dir, credentials_file, capsys):
    cli.main(["auth", "import", str(credentials_file)])
    with patch("gdrive_lite.drive.DriveClient.delete_file") as delete:
        assert cli.main(["drive", "delete", "https://drive.google.com/open?id=abc"]) == 0
    delete.assert_called_once_with("https://drive.google.com/open?id=abc")


def test_drive_error_exit_code(config_dir, credentials_file, capsys):
    cli.main(["auth", "import", str(credentials_file)])
    with patch("gdrive_lite.drive.DriveClient.delete_file", side_effect=ValueError("No file id")):
        assert cli.main(["drive", "delete", "https://drive.google.com/open"]) == 1
    assert "No file id" in capsys.readouterr().out
