"""Pytest configuration and fixtures for ssoctl tests."""

import json
import os
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from ssoctl.aws.cli import AwsCli, CommandResult
from ssoctl.cli.prompt import Prompter
from ssoctl.config import Settings, get_settings
from ssoctl.core.exceptions import UserCancelled
from ssoctl.core.models import SSOSession

START_URL = "https://example.awsapps.com/start"


class FakeAwsCli(AwsCli):
    """AwsCli whose subprocess calls are answered from a script."""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.calls: list[tuple[str, ...]] = []
        self.timeouts: list[float | None] = []
        self._responses: list[tuple[tuple[str, ...], dict]] = []

    def on(
        self,
        *prefix: str,
        stdout: str | dict | None = "",
        stderr: str = "",
        returncode: int = 0,
        action: Callable[[tuple[str, ...]], None] | None = None,
        raises: BaseException | None = None,
    ) -> "FakeAwsCli":
        """Answer commands starting with ``prefix``. Later registrations win."""
        if isinstance(stdout, dict):
            stdout = json.dumps(stdout)
        self._responses.insert(
            0,
            (
                prefix,
                {
                    "stdout": stdout or "",
                    "stderr": stderr,
                    "returncode": returncode,
                    "action": action,
                    "raises": raises,
                },
            ),
        )
        return self

    def _execute(self, args, interactive=False, timeout=None):
        self.calls.append(tuple(args))
        self.timeouts.append(timeout)
        for prefix, response in self._responses:
            if tuple(args[: len(prefix)]) == prefix:
                if response["raises"] is not None:
                    raise response["raises"]
                if response["action"] is not None:
                    response["action"](tuple(args))
                return CommandResult(
                    response["returncode"], response["stdout"], response["stderr"]
                )
        return CommandResult(0, "", "")

    def called(self, *prefix: str) -> list[tuple[str, ...]]:
        """Recorded calls starting with ``prefix``."""
        return [c for c in self.calls if c[: len(prefix)] == prefix]


class ScriptedPrompter(Prompter):
    """
    Prompter that replays canned answers in order.

    An answer of None (or "") to text_input takes the default. A
    UserCancelled instance is raised instead of answering.
    """

    def __init__(self, answers: Sequence = ()):
        self.answers = list(answers)
        self.prompts: list[tuple[str, str, object]] = []

    def _next(self, kind: str, label: str, detail: object = None):
        self.prompts.append((kind, label, detail))
        if not self.answers:
            raise AssertionError(f"unexpected {kind} prompt: {label}")
        answer = self.answers.pop(0)
        if isinstance(answer, UserCancelled):
            raise answer
        return answer

    def select_one(self, label, options):
        answer = self._next("select", label, list(options))
        if isinstance(answer, int):
            return options[answer]
        assert answer in options, f"{answer!r} not in {list(options)}"
        return answer

    def text_input(self, label, default="", validate=None):
        answer = self._next("text", label, default)
        value = answer or default
        if validate is not None:
            validate(value)
        return value

    def confirm(self, label, default=False):
        answer = self._next("confirm", label, default)
        return default if answer is None else bool(answer)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's AWS and ssoctl environment out of the tests."""
    for var in ("AWS_PROFILE", "AWS_REGION", "AWS_DEFAULT_REGION", "AWS_CONFIG_FILE"):
        monkeypatch.delenv(var, raising=False)
    for var in list(os.environ):
        if var.startswith("SSOCTL_"):
            monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path):
    """Settings with every path under a temporary home."""
    return Settings(
        aws_config_file=tmp_path / ".aws" / "config",
        sso_cache_dir=tmp_path / ".aws" / "sso" / "cache",
        app_config_dir=tmp_path / ".config" / "ssoctl",
    )


@pytest.fixture
def aws_config_path(settings) -> Path:
    return settings.aws_config_file


@pytest.fixture
def cache_dir(settings) -> Path:
    settings.sso_cache_dir.mkdir(parents=True)
    return settings.sso_cache_dir


@pytest.fixture
def fake_aws(settings):
    return FakeAwsCli(settings)


@pytest.fixture
def session():
    return SSOSession(name="dev-sso", start_url=START_URL, region="us-east-1")


def write_cache_file(
    cache_dir: Path,
    filename: str,
    expires_in: timedelta | None = timedelta(hours=1),
    **fields,
) -> Path:
    """Write an SSO cache file like 'aws sso login' does."""
    data = {"accessToken": "token-" + filename, "region": "us-east-1"}
    if expires_in is not None:
        expires_at = datetime.now(timezone.utc) + expires_in
        data["expiresAt"] = expires_at.strftime("%Y-%m-%dT%H:%M:%SZ")
    data.update(fields)
    path = cache_dir / filename
    path.write_text(json.dumps(data))
    return path


def write_aws_config(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


def session_config(name: str = "dev-sso", start_url: str = START_URL, region: str = "us-east-1") -> str:
    return (
        f"[sso-session {name}]\n"
        f"sso_start_url = {start_url}\n"
        f"sso_region = {region}\n"
        "sso_registration_scopes = sso:account:access\n"
    )


@pytest.fixture
def make_prompter():
    """Build a ScriptedPrompter from a list of answers."""
    return ScriptedPrompter


@pytest.fixture
def cache_file(cache_dir):
    """Write an SSO cache file into the temporary cache directory."""

    def _write(filename: str, expires_in: timedelta | None = timedelta(hours=1), **fields) -> Path:
        return write_cache_file(cache_dir, filename, expires_in, **fields)

    return _write


@pytest.fixture
def aws_config(aws_config_path):
    """Write the temporary AWS config file."""

    def _write(content: str) -> Path:
        write_aws_config(aws_config_path, content)
        return aws_config_path

    return _write


@pytest.fixture
def registered_session(aws_config, session):
    """The test session, already present as [sso-session dev-sso]."""
    aws_config(session_config(session.name, session.start_url, session.region))
    return session
