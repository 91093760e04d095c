"""Account and role discovery and selection."""

from __future__ import annotations

from ssoctl.auth.token_cache import TokenCache
from ssoctl.aws.cli import AwsCli
from ssoctl.cli.prompt import Prompter
from ssoctl.core.exceptions import SelectionError, SSOCtlError
from ssoctl.core.models import Account, SSOSession, validate_account_id
from ssoctl.logging import get_logger

logger = get_logger("sso.selection")

UNKNOWN_ACCOUNT_NAME = "Unknown"


class AccountRoleSelector:
    """Lists accounts and roles with 'aws sso' and asks the user to pick."""

    def __init__(self, aws: AwsCli, prompter: Prompter, token_cache: TokenCache):
        self.aws = aws
        self.prompter = prompter
        self.token_cache = token_cache

    def _access_token(self, session: SSOSession) -> str:
        return self.token_cache.resolve(session).access_token

    def list_accounts(self, session: SSOSession) -> list[Account]:
        """Accounts the session's token can access; entries without an ID are dropped."""
        data = self.aws.run_json(
            "sso",
            "list-accounts",
            "--region",
            session.region,
            "--access-token",
            self._access_token(session),
            "--output",
            "json",
        )
        accounts = []
        for item in data.get("accountList") or []:
            if not isinstance(item, dict) or not item.get("accountId"):
                continue
            account = Account.from_dict(item)
            account.region = session.region
            accounts.append(account)
        return accounts

    def list_roles(self, session: SSOSession, account_id: str) -> list[str]:
        """Role names available in an account."""
        data = self.aws.run_json(
            "sso",
            "list-account-roles",
            "--region",
            session.region,
            "--account-id",
            account_id,
            "--access-token",
            self._access_token(session),
            "--output",
            "json",
        )
        return [
            item["roleName"]
            for item in data.get("roleList") or []
            if isinstance(item, dict) and item.get("roleName")
        ]

    def select_account(self, session: SSOSession) -> tuple[str, str]:
        """
        Ask the user for an account.

        Returns:
            (account_id, account_name)

        Raises:
            SelectionError: If no accounts are available
            ValidationError: If the chosen ID is not a 12-digit account ID
            UserCancelled: If the user interrupted the prompt
        """
        accounts = self.list_accounts(session)
        if not accounts:
            raise SelectionError(f"no AWS accounts found for SSO session {session.name}")

        labels = [account.label for account in accounts]
        choice = self.prompter.select_one("Select an AWS account", labels)

        account = accounts[labels.index(choice)]
        return validate_account_id(account.account_id), account.account_name

    def select_role(self, session: SSOSession, account_id: str) -> str:
        """
        Ask the user for a role in the account.

        Raises:
            SelectionError: If the account has no roles
            UserCancelled: If the user interrupted the prompt
        """
        roles = self.list_roles(session, account_id)
        if not roles:
            raise SelectionError(f"no roles found for account {account_id}")
        return self.prompter.select_one("Select a role", roles)

    def account_name(self, session: SSOSession, account_id: str) -> str:
        """Display name of an account, or "Unknown" if it cannot be looked up."""
        try:
            accounts = self.list_accounts(session)
        except SSOCtlError as e:
            logger.warning(
                "failed to look up account name",
                extra={"account_id": account_id, "error": str(e)},
            )
            return UNKNOWN_ACCOUNT_NAME

        for account in accounts:
            if account.account_id == account_id:
                return account.account_name or UNKNOWN_ACCOUNT_NAME
        return UNKNOWN_ACCOUNT_NAME
