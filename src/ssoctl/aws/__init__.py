"""aws CLI integration."""

from ssoctl.aws.cli import AwsCli, CommandResult

__all__ = ["AwsCli", "CommandResult"]
