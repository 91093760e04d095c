"""ssoctl - local credential broker for AWS IAM Identity Center (SSO)."""

__version__ = "0.1.0"
