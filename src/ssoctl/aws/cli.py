"""Subprocess seam for the aws CLI.

Every call to the aws binary goes through AwsCli. Tests replace ``_execute``
with scripted results instead of spawning processes.
"""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from typing import Any

from ssoctl.config import Settings, get_settings
from ssoctl.core.exceptions import (
    ConfigurationError,
    LoginTimeoutError,
    SubprocessError,
    UserCancelled,
)
from ssoctl.logging import get_logger

logger = get_logger("aws.cli")

# Exit status of a process terminated by SIGINT (Ctrl-C).
INTERRUPTED_EXIT_CODE = 130


@dataclass
class CommandResult:
    """Outcome of one aws CLI invocation."""

    returncode: int
    stdout: str = ""
    stderr: str = ""


def _describe(args: tuple[str, ...]) -> str:
    """Short command description that never includes tokens or secrets."""
    words = [a for a in args[:3] if not a.startswith("-")]
    return "aws " + " ".join(words[:2])


class AwsCli:
    """Runs aws CLI commands."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    @property
    def executable(self) -> str:
        return self.settings.aws_cli_path

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def _execute(
        self,
        args: tuple[str, ...],
        interactive: bool = False,
        timeout: float | None = None,
    ) -> CommandResult:
        """Spawn the process. Interactive runs share the terminal's stdin, stdout and stderr."""
        cmd = [self.executable, *args]
        try:
            if interactive:
                proc = subprocess.run(cmd, timeout=timeout, check=False)
                return CommandResult(proc.returncode, "", "")

            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
            return CommandResult(proc.returncode, proc.stdout or "", proc.stderr or "")
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"AWS CLI not found ({self.executable}); install AWS CLI v2 and retry"
            ) from e

    def run(self, *args: str) -> str:
        """
        Run a non-interactive command and return its stdout.

        Raises:
            SubprocessError: On non-zero exit or timeout, with the raw output attached
        """
        description = _describe(args)
        logger.debug("running command", extra={"command": description})
        try:
            result = self._execute(args, timeout=self.settings.command_timeout_seconds)
        except subprocess.TimeoutExpired as e:
            raise SubprocessError(
                f"{description} timed out after {e.timeout}s",
                stderr=_text(e.stderr),
                stdout=_text(e.output),
            ) from e

        if result.returncode != 0:
            raise SubprocessError(
                f"{description} failed with exit code {result.returncode}",
                returncode=result.returncode,
                stderr=result.stderr,
                stdout=result.stdout,
            )
        return result.stdout

    def run_json(self, *args: str) -> dict[str, Any]:
        """Run a command and parse its stdout as a JSON object."""
        output = self.run(*args)
        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            raise SubprocessError(
                f"failed to parse {_describe(args)} output as JSON: {e}",
                stdout=output,
            ) from e
        if not isinstance(data, dict):
            raise SubprocessError(f"unexpected {_describe(args)} output", stdout=output)
        return data

    def run_interactive(self, *args: str, timeout: float) -> None:
        """
        Run a command attached to the terminal, bounded by a timeout.

        Raises:
            UserCancelled: If the user interrupted the command
            LoginTimeoutError: If the command did not finish in time
            SubprocessError: On any other non-zero exit
        """
        description = _describe(args)
        logger.debug("running interactive command", extra={"command": description})
        try:
            result = self._execute(args, interactive=True, timeout=timeout)
        except subprocess.TimeoutExpired as e:
            raise LoginTimeoutError(
                f"{description} timed out after {int(timeout)}s: "
                "the browser flow was not completed in time",
            ) from e
        except KeyboardInterrupt as e:
            raise UserCancelled() from e

        if result.returncode == INTERRUPTED_EXIT_CODE:
            raise UserCancelled()
        if result.returncode != 0:
            raise SubprocessError(
                f"{description} failed with exit code {result.returncode}; "
                "see the aws CLI output above",
                returncode=result.returncode,
            )

    # -------------------------------------------------------------------------
    # aws configure
    # -------------------------------------------------------------------------

    def configure_get(self, key: str, profile: str) -> str:
        """Read one key of a profile; raises SubprocessError if unset."""
        return self.run("configure", "get", key, "--profile", profile).strip()

    def configure_set(self, key: str, value: str, profile: str) -> None:
        """Set one key of a profile (aws CLI writes credentials to ~/.aws/credentials)."""
        self.run("configure", "set", key, value, "--profile", profile)

    def list_profiles(self) -> list[str]:
        """All profile names known to the aws CLI."""
        output = self.run("configure", "list-profiles")
        return [line.strip() for line in output.splitlines() if line.strip()]


def _text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
