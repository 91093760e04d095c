"""Tests for ssoctl.sso session, selection and profile modules."""

from unittest.mock import MagicMock

import pytest

from ssoctl.auth.token_cache import TokenCache
from ssoctl.core.exceptions import (
    ConfigurationError,
    PersistError,
    SelectionError,
    SubprocessError,
    UserCancelled,
    ValidationError,
)
from ssoctl.core.models import SSOSession
from ssoctl.sso.profile import ProfileWriter
from ssoctl.sso.selection import AccountRoleSelector
from ssoctl.sso.session import CREATE_NEW_SESSION, SessionResolver
from ssoctl.storage.app_config import AppConfigStore
from ssoctl.storage.aws_config import AwsConfigFile

ACCOUNTS = {
    "accountList": [
        {"accountId": "111111111111", "accountName": "Prod", "emailAddress": "prod@example.com"},
        {"accountId": "222222222222", "accountName": ""},
        {"accountName": "No ID"},
    ]
}


@pytest.fixture
def config_file(settings):
    return AwsConfigFile(settings=settings)


@pytest.fixture
def app_store(settings):
    return AppConfigStore(settings=settings)


@pytest.fixture
def resolver_factory(make_prompter, config_file, app_store, settings):
    def _make(answers=()):
        prompter = make_prompter(answers)
        resolver = SessionResolver(
            prompter, config_file, app_store, settings=settings, audit=MagicMock()
        )
        return resolver, prompter

    return _make


def save_sessions(store, *sessions):
    config = store.load()
    for s in sessions:
        config.add_session(s)
    store.save(config)


class TestSessionResolver:
    """Tests for session resolution."""

    def test_all_parameters_build_session_without_prompts(self, resolver_factory):
        resolver, prompter = resolver_factory()

        session = resolver.resolve("corp", "https://corp.awsapps.com/start#", "eu-west-1")

        assert session == SSOSession("corp", "https://corp.awsapps.com/start", "eu-west-1")
        assert resolver.sessions == [session]
        assert prompter.prompts == []

    def test_parameters_with_bad_start_url(self, resolver_factory):
        resolver, _ = resolver_factory()

        with pytest.raises(ValidationError):
            resolver.resolve("corp", "http://corp.awsapps.com/start", "eu-west-1")

    def test_single_saved_session_used_without_prompt(self, resolver_factory, app_store, session):
        save_sessions(app_store, session)
        resolver, prompter = resolver_factory()

        assert resolver.resolve() == session
        assert prompter.prompts == []

    def test_single_incomplete_saved_session(self, resolver_factory, app_store):
        app_store.config_dir.mkdir(parents=True)
        (app_store.config_dir / "config.yaml").write_text("ssoSessions:\n  - name: half\n")
        resolver, _ = resolver_factory()

        with pytest.raises(ConfigurationError, match="missing or invalid fields"):
            resolver.resolve()

    def test_multiple_saved_sessions_offer_selection(self, resolver_factory, app_store, session):
        other = SSOSession("other", "https://other.awsapps.com/start", "eu-west-1")
        save_sessions(app_store, session, other)
        resolver, prompter = resolver_factory(["other (https://other.awsapps.com/start)"])

        assert resolver.resolve() == other
        kind, label, options = prompter.prompts[0]
        assert options == [
            "dev-sso (https://example.awsapps.com/start)",
            "other (https://other.awsapps.com/start)",
            CREATE_NEW_SESSION,
        ]

    def test_create_new_from_selection(self, resolver_factory, app_store, session):
        save_sessions(app_store, session, SSOSession("b", "https://b", "us-east-1"))
        resolver, _ = resolver_factory(
            [CREATE_NEW_SESSION, "fresh", "https://fresh.awsapps.com/start", "ap-south-1"]
        )

        created = resolver.resolve()

        assert created == SSOSession("fresh", "https://fresh.awsapps.com/start", "ap-south-1")
        assert resolver.sessions == [created]

    def test_interactive_creation_defaults(self, resolver_factory):
        resolver, prompter = resolver_factory([None, "https://corp.awsapps.com/start", None])

        session = resolver.resolve()

        assert session.name == "default-sso"
        assert session.region == "us-east-1"
        assert session.scopes == "sso:account:access"
        assert [p[1] for p in prompter.prompts] == [
            "SSO session name",
            "SSO start URL (e.g., https://my-sso-portal.awsapps.com/start)",
            "SSO region",
        ]

    def test_interactive_creation_validates_start_url(self, resolver_factory):
        resolver, _ = resolver_factory([None, "corp.awsapps.com"])

        with pytest.raises(ValidationError):
            resolver.resolve()

    def test_cancel_propagates(self, resolver_factory, app_store, session):
        save_sessions(app_store, session, SSOSession("b", "https://b", "us-east-1"))
        resolver, _ = resolver_factory([UserCancelled()])

        with pytest.raises(UserCancelled):
            resolver.resolve()

    def test_register_writes_section(self, resolver_factory, aws_config_path, session):
        resolver, _ = resolver_factory()

        assert resolver.register(session) is True
        assert aws_config_path.read_text() == (
            "[sso-session dev-sso]\n"
            "sso_start_url = https://example.awsapps.com/start\n"
            "sso_region = us-east-1\n"
            "sso_registration_scopes = sso:account:access\n"
        )
        resolver.audit.session_registered.assert_called_once()

    def test_register_identical_is_noop(self, resolver_factory, aws_config, session):
        path = aws_config(
            "# hand edited\n"
            "[sso-session dev-sso]\n"
            "sso_start_url=https://example.awsapps.com/start\n"
            "sso_region=us-east-1\n"
            "sso_registration_scopes=sso:account:access\n"
        )
        before = path.read_bytes()
        resolver, _ = resolver_factory()

        assert resolver.register(session) is False
        assert path.read_bytes() == before
        resolver.audit.session_registered.assert_not_called()

    def test_register_updates_changed_session(self, resolver_factory, config_file, registered_session):
        resolver, _ = resolver_factory()
        moved = SSOSession("dev-sso", registered_session.start_url, "eu-west-1")

        assert resolver.register(moved) is True
        assert config_file.section_values("sso-session dev-sso")["sso_region"] == "eu-west-1"
        assert config_file.load().section_names() == ["sso-session dev-sso"]

    def test_register_keeps_neighbouring_profile(self, resolver_factory, aws_config, session):
        """Test a header with a trailing comment survives a session rewrite."""
        path = aws_config(
            "[sso-session dev-sso]\n"
            "sso_start_url = https://old.awsapps.com/start\n"
            "sso_region = us-east-1\n"
            "\n"
            "[profile other] ; team profile\n"
            "region = eu-west-1\n"
        )
        resolver, _ = resolver_factory()

        assert resolver.register(session) is True

        text = path.read_text()
        assert f"sso_start_url = {session.start_url}\n" in text
        assert text.endswith("\n[profile other] ; team profile\nregion = eu-west-1\n")

    def test_lookup_from_aws_config(self, resolver_factory, registered_session):
        resolver, _ = resolver_factory()

        assert resolver.lookup("dev-sso") == registered_session

    def test_lookup_from_app_config(self, resolver_factory, app_store, session):
        save_sessions(app_store, session)
        resolver, _ = resolver_factory()

        assert resolver.lookup("dev-sso") == session

    def test_lookup_unknown(self, resolver_factory):
        resolver, _ = resolver_factory()

        with pytest.raises(ConfigurationError, match="not found"):
            resolver.lookup("nope")

    def test_save_persists_session(self, resolver_factory, app_store, session):
        resolver, _ = resolver_factory()
        resolver.save(session)

        assert app_store.load().sessions() == [session]


@pytest.fixture
def selector_factory(fake_aws, make_prompter, cache_dir, cache_file):
    cache_file("token.json", sessionName="dev-sso")

    def _make(answers=()):
        prompter = make_prompter(answers)
        return AccountRoleSelector(fake_aws, prompter, TokenCache(cache_dir)), prompter

    return _make


class TestAccountRoleSelector:
    """Tests for account and role selection."""

    def test_list_accounts_command(self, selector_factory, fake_aws, session):
        fake_aws.on("sso", "list-accounts", stdout=ACCOUNTS)
        selector, _ = selector_factory()

        accounts = selector.list_accounts(session)

        assert [a.account_id for a in accounts] == ["111111111111", "222222222222"]
        assert fake_aws.calls[0] == (
            "sso", "list-accounts",
            "--region", "us-east-1",
            "--access-token", "token-token.json",
            "--output", "json",
        )

    def test_select_account_labels(self, selector_factory, fake_aws, session):
        fake_aws.on("sso", "list-accounts", stdout=ACCOUNTS)
        selector, prompter = selector_factory(["222222222222 (Unnamed)"])

        assert selector.select_account(session) == ("222222222222", "")
        assert prompter.prompts[0][2] == ["111111111111 (Prod)", "222222222222 (Unnamed)"]

    def test_select_account_with_name(self, selector_factory, fake_aws, session):
        fake_aws.on("sso", "list-accounts", stdout=ACCOUNTS)
        selector, _ = selector_factory([0])

        assert selector.select_account(session) == ("111111111111", "Prod")

    def test_accounts_with_same_label_all_listed(self, selector_factory, fake_aws, session):
        duplicated = {
            "accountList": [
                {"accountId": "111111111111", "accountName": "Prod"},
                {"accountId": "111111111111", "accountName": "Prod"},
                {"accountId": "222222222222", "accountName": "Dev"},
            ]
        }
        fake_aws.on("sso", "list-accounts", stdout=duplicated)
        selector, prompter = selector_factory([2])

        assert selector.select_account(session) == ("222222222222", "Dev")
        assert prompter.prompts[0][2] == [
            "111111111111 (Prod)",
            "111111111111 (Prod)",
            "222222222222 (Dev)",
        ]

    def test_malformed_account_id_rejected(self, selector_factory, fake_aws, session):
        fake_aws.on("sso", "list-accounts", stdout={"accountList": [{"accountId": "12345"}]})
        selector, _ = selector_factory([0])

        with pytest.raises(ValidationError):
            selector.select_account(session)

    def test_no_accounts(self, selector_factory, fake_aws, session):
        fake_aws.on("sso", "list-accounts", stdout={"accountList": []})
        selector, _ = selector_factory()

        with pytest.raises(SelectionError, match="no AWS accounts"):
            selector.select_account(session)

    def test_list_accounts_failure_surfaces_output(self, selector_factory, fake_aws, session):
        fake_aws.on("sso", "list-accounts", returncode=255, stderr="UnauthorizedException")
        selector, _ = selector_factory()

        with pytest.raises(SubprocessError, match="UnauthorizedException"):
            selector.select_account(session)

    def test_select_role(self, selector_factory, fake_aws, session):
        fake_aws.on(
            "sso", "list-account-roles",
            stdout={"roleList": [{"roleName": "Admin"}, {"roleName": ""}, {"roleName": "ReadOnly"}]},
        )
        selector, prompter = selector_factory(["ReadOnly"])

        assert selector.select_role(session, "111111111111") == "ReadOnly"
        assert prompter.prompts[0][2] == ["Admin", "ReadOnly"]
        assert fake_aws.calls[0][:6] == (
            "sso", "list-account-roles", "--region", "us-east-1", "--account-id", "111111111111",
        )

    def test_zero_roles_is_an_error(self, selector_factory, fake_aws, session):
        fake_aws.on("sso", "list-account-roles", stdout={"roleList": []})
        selector, prompter = selector_factory()

        with pytest.raises(SelectionError, match="no roles found for account 111111111111"):
            selector.select_role(session, "111111111111")
        assert prompter.prompts == []

    def test_cancel_propagates(self, selector_factory, fake_aws, session):
        fake_aws.on("sso", "list-account-roles", stdout={"roleList": [{"roleName": "Admin"}]})
        selector, _ = selector_factory([UserCancelled()])

        with pytest.raises(UserCancelled):
            selector.select_role(session, "111111111111")

    def test_account_name(self, selector_factory, fake_aws, session):
        fake_aws.on("sso", "list-accounts", stdout=ACCOUNTS)
        selector, _ = selector_factory()

        assert selector.account_name(session, "111111111111") == "Prod"
        assert selector.account_name(session, "222222222222") == "Unknown"
        assert selector.account_name(session, "333333333333") == "Unknown"

    def test_account_name_degrades_on_failure(self, selector_factory, fake_aws, session):
        fake_aws.on("sso", "list-accounts", returncode=1, stderr="boom")
        selector, _ = selector_factory()

        assert selector.account_name(session, "111111111111") == "Unknown"


EXISTING_CONFIG = """\
[profile keep-me]
region = eu-west-1

[default]
region = us-west-2
output = text

[profile dev]
region = old
"""


class TestProfileWriter:
    """Tests for writing profiles into the AWS config file."""

    @pytest.fixture
    def writer(self, config_file):
        return ProfileWriter(config_file, audit=MagicMock())

    def test_named_profile(self, writer, config_file, session):
        profile = writer.write_profile("dev", session, "123456789012", "Admin", "eu-west-1")

        assert config_file.section_values("profile dev") == {
            "sso_session": "dev-sso",
            "sso_account_id": "123456789012",
            "sso_role_name": "Admin",
            "region": "eu-west-1",
            "output": "json",
        }
        assert profile.profile_name == "dev"
        assert profile.start_url == session.start_url
        writer.audit.profile_written.assert_called_once_with("dev", "123456789012", "Admin")

    def test_named_profile_preserves_other_sections(self, writer, aws_config, session):
        path = aws_config(EXISTING_CONFIG)

        writer.write_profile("dev", session, "123456789012", "Admin", "eu-west-1")

        text = path.read_text()
        assert text.startswith("[profile keep-me]\nregion = eu-west-1\n\n[default]\nregion = us-west-2\noutput = text\n\n")
        assert text.count("[profile dev]") == 1
        assert "region = old" not in text

    def test_rewrite_is_idempotent(self, writer, aws_config, session):
        path = aws_config(EXISTING_CONFIG)
        writer.write_profile("dev", session, "123456789012", "Admin", "eu-west-1")
        once = path.read_text()
        writer.write_profile("dev", session, "123456789012", "Admin", "eu-west-1")

        assert path.read_text() == once

    def test_invalid_account_id_rejected_before_write(self, writer, aws_config, session):
        path = aws_config(EXISTING_CONFIG)

        with pytest.raises(ValidationError):
            writer.write_profile("dev", session, "12345", "Admin", "eu-west-1")
        assert path.read_text() == EXISTING_CONFIG

    def test_invalid_start_url_rejected_before_write(self, writer, aws_config_path):
        session = SSOSession("s", "http://insecure.example.com", "us-east-1")

        with pytest.raises(ValidationError):
            writer.write_profile("dev", session, "123456789012", "Admin", "eu-west-1")
        assert not aws_config_path.exists()

    def test_default_profile_replaced_wholesale(self, writer, aws_config, config_file, session):
        path = aws_config(EXISTING_CONFIG)

        writer.write_profile("default", session, "123456789012", "Admin", "eu-west-1")

        assert config_file.section_values("default") == {
            "sso_session": "dev-sso",
            "sso_account_id": "123456789012",
            "sso_role_name": "Admin",
            "region": "eu-west-1",
            "sso_region": "us-east-1",
            "sso_start_url": "https://example.awsapps.com/start",
            "output": "json",
        }
        text = path.read_text()
        assert text.count("[default]") == 1
        assert "output = text" not in text
        assert "[profile keep-me]" in text and "[profile dev]" in text

    def test_default_profile_verification_failure(self, writer, config_file, session):
        config_file.section_values = MagicMock(return_value={"sso_session": "dev-sso"})

        with pytest.raises(PersistError, match="missing sso_account_id"):
            writer.write_profile("default", session, "123456789012", "Admin", "eu-west-1")
        writer.audit.profile_written.assert_not_called()

    def test_read_profile_fills_from_session(self, writer, aws_config):
        aws_config(
            "[sso-session corp]\nsso_start_url = https://corp.awsapps.com/start\nsso_region = us-east-1\n\n"
            "[profile dev]\nsso_session = corp\nsso_account_id = 123456789012\n"
            "sso_role_name = Admin\nregion = eu-west-1\n"
        )

        profile = writer.read_profile("dev")

        assert profile.session_name == "corp"
        assert profile.start_url == "https://corp.awsapps.com/start"
        assert profile.sso_region == "us-east-1"
        assert profile.region == "eu-west-1"
        assert profile.account_id == "123456789012"
        assert profile.role == "Admin"

    def test_read_missing_profile(self, writer):
        with pytest.raises(ConfigurationError, match="not found"):
            writer.read_profile("ghost")

    def test_set_as_default(self, writer, config_file, registered_session):
        writer.write_profile("dev", registered_session, "123456789012", "Admin", "eu-west-1")

        profile = writer.set_as_default("dev")

        assert profile.is_default
        default = config_file.section_values("default")
        assert default["sso_account_id"] == "123456789012"
        assert default["sso_start_url"] == registered_session.start_url
        assert default["region"] == "eu-west-1"

    def test_set_as_default_incomplete_profile(self, writer, aws_config):
        aws_config("[profile half]\nregion = us-east-1\n")

        with pytest.raises(ConfigurationError, match="cannot set it as default"):
            writer.set_as_default("half")
