"""Tests for the admin command line."""

from __future__ import annotations

import re

import pytest
from click.testing import CliRunner

from keyward.cli import cli
from keyward.config import get_settings

KEY_RE = re.compile(r"sk_[A-Za-z0-9]{8}_[A-Za-z0-9]{32}")
CODE_RE = re.compile(r"ac_[A-Za-z0-9]{4}-[A-Za-z0-9]{4}-[A-Za-z0-9]{4}")


@pytest.fixture
def runner(tmp_path, monkeypatch) -> CliRunner:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("KEYWARD_CONFIG_FILE", raising=False)
    monkeypatch.setenv("KEYWARD_DATABASE__URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    get_settings.cache_clear()
    yield CliRunner()
    get_settings.cache_clear()


def test_create_user_and_key(runner: CliRunner):
    result = runner.invoke(cli, ["create-user", "--email", "Alice@X.com", "--role", "customer"])
    assert result.exit_code == 0, result.output
    assert "Created user 'alice@x.com' with id 1" in result.output

    result = runner.invoke(cli, ["create-key", "--user-id", "1"])
    assert result.exit_code == 0, result.output
    assert "shown only once" in result.output
    key = KEY_RE.search(result.output).group(0)

    listing = runner.invoke(cli, ["list-keys"])
    assert listing.exit_code == 0
    assert key[:11] in listing.output
    assert key not in listing.output
    assert "active" in listing.output


def test_revoke_key(runner: CliRunner):
    runner.invoke(cli, ["create-user", "--email", "a@x.com", "--role", "admin"])
    created = runner.invoke(cli, ["create-key", "--user-id", "1"])
    prefix = KEY_RE.search(created.output).group(0)[:11]

    result = runner.invoke(cli, ["revoke-key", "--prefix", prefix])
    assert result.exit_code == 0, result.output

    listing = runner.invoke(cli, ["list-keys"])
    assert "revoked" in listing.output

    again = runner.invoke(cli, ["revoke-key", "--prefix", prefix])
    assert again.exit_code == 1


def test_duplicate_user_fails(runner: CliRunner):
    runner.invoke(cli, ["create-user", "--email", "a@x.com", "--role", "support"])

    result = runner.invoke(cli, ["create-user", "--email", "a@x.com", "--role", "support"])

    assert result.exit_code == 1
    assert "already exists" in result.output


def test_unknown_role_rejected(runner: CliRunner):
    result = runner.invoke(cli, ["create-user", "--email", "a@x.com", "--role", "root"])

    assert result.exit_code == 2


def test_create_key_for_missing_user(runner: CliRunner):
    result = runner.invoke(cli, ["create-key", "--user-id", "42"])

    assert result.exit_code == 1
    assert "not found" in result.output


def test_activation_code_listing(runner: CliRunner):
    runner.invoke(cli, ["create-user", "--email", "c@x.com", "--role", "customer"])
    first = runner.invoke(cli, ["create-activation-code", "--user-id", "1"])
    second = runner.invoke(cli, ["create-activation-code", "--user-id", "1"])
    assert CODE_RE.search(first.output)
    assert CODE_RE.search(second.output)

    listing = runner.invoke(cli, ["list-activation-codes"])

    assert listing.exit_code == 0
    assert listing.output.count("used") == 1
    assert listing.output.count("available") == 1


def test_seed(runner: CliRunner):
    result = runner.invoke(cli, ["seed"])

    assert result.exit_code == 0, result.output
    assert len(KEY_RE.findall(result.output)) == 3
    assert len(CODE_RE.findall(result.output)) == 1

    users = runner.invoke(cli, ["list-users"])
    for email in ("admin@keyward.local", "support@keyward.local", "customer@keyward.local"):
        assert email in users.output


def test_malformed_email_rejected(runner: CliRunner):
    result = runner.invoke(cli, ["create-user", "--email", "nobody", "--role", "customer"])

    assert result.exit_code == 1
    assert "Invalid email address" in result.output
