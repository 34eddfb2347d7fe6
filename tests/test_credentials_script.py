# tests/test_credentials_script.py
"""Tests for the credential generation script."""

from linkshelf.core.security import b64url_decode, hash_text
from linkshelf.scripts import credentials


def _lines(capsys) -> dict[str, str]:
    out = capsys.readouterr().out
    return dict(line.split("=", 1) for line in out.strip().splitlines())


def test_prints_hash_and_secret(capsys):
    assert credentials.main(["--username", "admin", "--password", "hunter2"]) == 0
    values = _lines(capsys)
    assert values["ADMIN_USERNAME"] == "admin"
    assert values["ADMIN_PASSWORD_SHA256"] == hash_text("hunter2")
    assert len(b64url_decode(values["SESSION_SECRET"])) == credentials.SECRET_BYTES


def test_secrets_are_fresh(capsys):
    credentials.main(["--secret-only"])
    first = _lines(capsys)["SESSION_SECRET"]
    credentials.main(["--secret-only"])
    assert _lines(capsys)["SESSION_SECRET"] != first


def test_prompts_for_password(capsys, mocker):
    mocker.patch("linkshelf.scripts.credentials.getpass.getpass", return_value="typed")
    assert credentials.main(["--no-secret"]) == 0
    assert _lines(capsys) == {"ADMIN_PASSWORD_SHA256": hash_text("typed")}


def test_empty_password_is_rejected(mocker):
    mocker.patch("linkshelf.scripts.credentials.getpass.getpass", return_value="")
    assert credentials.main([]) == 1


def test_conflicting_flags(capsys):
    assert credentials.main(["--secret-only", "--no-secret"]) == 2
