"""Fixtures for integration tests: a temporary home and a stand-in aws executable."""

import stat
import sys
from pathlib import Path

import pytest

from ssoctl.config import get_settings

FAKE_AWS = r"""#!/bin/sh
# Stand-in for the aws CLI v2, answering the commands ssoctl runs.
echo "$*" >> "$FAKE_AWS_LOG"

case "$1 $2" in
  "sso login")
    if [ -n "$FAKE_AWS_LOGIN_SLEEP" ]; then
      exec sleep "$FAKE_AWS_LOGIN_SLEEP"
    fi
    if [ -n "$FAKE_AWS_LOGIN_EXIT" ]; then
      echo "Error when retrieving token from sso" >&2
      exit "$FAKE_AWS_LOGIN_EXIT"
    fi
    mkdir -p "$HOME/.aws/sso/cache"
    cat > "$HOME/.aws/sso/cache/0123abcd.json" <<EOF
{"startUrl": "https://example.awsapps.com/start", "sessionName": "dev-sso", "region": "us-east-1", "accessToken": "integration-token", "expiresAt": "2099-01-01T00:00:00Z"}
EOF
    ;;
  "sso list-accounts")
    echo '{"accountList": [{"accountId": "123456789012", "accountName": "Sandbox", "emailAddress": "sandbox@example.com"}]}'
    ;;
  "sso list-account-roles")
    echo '{"roleList": [{"roleName": "Admin", "accountId": "123456789012"}]}'
    ;;
  "sso get-role-credentials")
    echo '{"roleCredentials": {"accessKeyId": "ASIAEXAMPLE", "secretAccessKey": "integration-secret", "sessionToken": "integration-session", "expiration": 4070908800000}}'
    ;;
  "sts get-caller-identity")
    echo '{"UserId": "AROAEXAMPLE:me", "Account": "123456789012", "Arn": "arn:aws:sts::123456789012:assumed-role/Admin/me"}'
    ;;
  "configure get")
    value=$(sed -n "/^\[profile $5\]/,/^\[/s/^$3 *= *//p" "$HOME/.aws/config" | head -n 1)
    [ -n "$value" ] || exit 1
    echo "$value"
    ;;
  "configure set")
    ;;
  "configure list-profiles")
    sed -n -e 's/^\[profile \(.*\)\]$/\1/p' -e 's/^\[default\]$/default/p' "$HOME/.aws/config"
    ;;
  *)
    echo "unknown command: $*" >&2
    exit 255
    ;;
esac
"""


@pytest.fixture
def home(tmp_path, monkeypatch) -> Path:
    """A temporary home directory with a stand-in aws CLI on the settings path."""
    if sys.platform == "win32":
        pytest.skip("stand-in aws CLI is a POSIX shell script")

    home = tmp_path / "home"
    home.mkdir()
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    aws = bin_dir / "aws"
    aws.write_text(FAKE_AWS)
    aws.chmod(aws.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("SSOCTL_AWS_CLI_PATH", str(aws))
    monkeypatch.setenv("FAKE_AWS_LOG", str(tmp_path / "aws.log"))
    get_settings.cache_clear()
    return home


@pytest.fixture
def aws_log(tmp_path, home):
    """Commands the stand-in aws CLI received, one per line."""

    def _read() -> list[str]:
        path = tmp_path / "aws.log"
        return path.read_text().splitlines() if path.exists() else []

    return _read
