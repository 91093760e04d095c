"""CLI command modules."""

from ssoctl.cli.commands.sso import sso_group

__all__ = ["sso_group"]
