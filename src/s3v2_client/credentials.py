"""Credentials and the providers that hand them out per request."""

import configparser
import datetime as dt
import os
import pathlib
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Protocol

from .exceptions import S3CredentialsError

# Credentials expiring within this window are treated as already expired, so
# they cannot lapse between fetching them and signing the request.
EXPIRY_MARGIN = dt.timedelta(seconds=20)


@dataclass(frozen=True)
class Credentials:
    access_key: str
    secret_key: str = field(repr=False)
    token: str | None = field(default=None, repr=False)
    expires_at: dt.datetime | None = None

    def is_expired(self, now: dt.datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        if now is None:
            now = dt.datetime.now(dt.UTC)
        return now + EXPIRY_MARGIN >= self.expires_at


class CredentialsProvider(Protocol):
    async def credentials(self) -> Credentials: ...


class StaticProvider:
    def __init__(
        self,
        access_key: str,
        secret_key: str,
        token: str | None = None,
        valid_for: int | None = None,
    ):
        self._credentials = Credentials(access_key, secret_key, token)
        self.valid_for = valid_for

    async def credentials(self) -> Credentials:
        if self.valid_for is None:
            return self._credentials
        expires_at = dt.datetime.now(dt.UTC) + dt.timedelta(seconds=self.valid_for)
        return replace(self._credentials, expires_at=expires_at)


class EnvironmentProvider:
    """Reads <PREFIX>_ACCESS_KEY_ID, <PREFIX>_SECRET_ACCESS_KEY and the optional
    <PREFIX>_SESSION_TOKEN and <PREFIX>_CREDENTIAL_EXPIRATION (ISO 8601)."""

    def __init__(
        self,
        prefix: str = "AWS",
        env_reader: Callable[[str], str | None] = os.environ.get,
    ):
        self.prefix = prefix
        self._env_reader = env_reader

    def _get(self, suffix: str) -> str | None:
        return self._env_reader(f"{self.prefix}_{suffix}") or None

    def _get_required(self, suffix: str) -> str:
        value = self._get(suffix)
        if value is None:
            raise S3CredentialsError(
                f"No (or empty) {self.prefix}_{suffix} in environment"
            )
        return value

    async def credentials(self) -> Credentials:
        access_key = self._get_required("ACCESS_KEY_ID")
        secret_key = self._get_required("SECRET_ACCESS_KEY")
        token = self._get("SESSION_TOKEN")

        expires_at = None
        raw_expiration = self._get("CREDENTIAL_EXPIRATION")
        if raw_expiration is not None:
            expires_at = _parse_expiration(
                raw_expiration, f"{self.prefix}_CREDENTIAL_EXPIRATION"
            )

        return Credentials(access_key, secret_key, token, expires_at)


def _parse_expiration(value: str, var_name: str) -> dt.datetime:
    try:
        parsed = dt.datetime.fromisoformat(value)
    except ValueError as e:
        raise S3CredentialsError(
            f"Invalid {var_name} in environment '{value}': {e}"
        ) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.UTC)
    return parsed.astimezone(dt.UTC)


class ProfileProvider:
    """Reads a profile from the AWS shared config and credentials INI files."""

    def __init__(
        self,
        profile_name: str | None = None,
        config_path: str | pathlib.Path | None = None,
        credentials_path: str | pathlib.Path | None = None,
    ):
        self.profile_name = profile_name or os.environ.get("AWS_PROFILE", "default")

        if config_path is None:
            config_path = os.environ.get("AWS_CONFIG_FILE") or (
                pathlib.Path.home() / ".aws" / "config"
            )
        if credentials_path is None:
            credentials_path = os.environ.get("AWS_SHARED_CREDENTIALS_FILE") or (
                pathlib.Path.home() / ".aws" / "credentials"
            )
        self.config_path = pathlib.Path(config_path)
        self.credentials_path = pathlib.Path(credentials_path)

    def _config_data(self) -> dict[str, str]:
        config = configparser.ConfigParser()
        if not self.config_path.exists():
            return {}
        config.read(self.config_path)
        # AWS config uses "profile <name>" except for default
        section = (
            self.profile_name
            if self.profile_name == "default"
            else f"profile {self.profile_name}"
        )
        if section in config:
            return dict(config[section])
        return {}

    def _credentials_data(self) -> dict[str, str]:
        credentials = configparser.ConfigParser()
        if not self.credentials_path.exists():
            return {}
        credentials.read(self.credentials_path)
        if self.profile_name in credentials:
            return dict(credentials[self.profile_name])
        return {}

    def _lookup(self, option: str) -> str | None:
        # credentials file takes precedence over config
        try:
            return self._credentials_data().get(option) or self._config_data().get(
                option
            )
        except configparser.Error as e:
            raise S3CredentialsError(f"Cannot read AWS profile files: {e}") from e

    def region(self) -> str | None:
        return self._lookup("region")

    def endpoint_url(self) -> str | None:
        return self._lookup("endpoint_url")

    async def credentials(self) -> Credentials:
        access_key = self._lookup("aws_access_key_id")
        secret_key = self._lookup("aws_secret_access_key")
        token = self._lookup("aws_session_token")

        if not access_key:
            raise S3CredentialsError(
                f"aws_access_key_id not found for profile '{self.profile_name}' "
                f"in config or credentials files"
            )
        if not secret_key:
            raise S3CredentialsError(
                f"aws_secret_access_key not found for profile '{self.profile_name}' "
                f"in config or credentials files"
            )
        return Credentials(access_key, secret_key, token)


class ChainProvider:
    """Tries each provider in turn and returns the first credentials found."""

    def __init__(self, *providers: CredentialsProvider):
        self.providers = providers or (EnvironmentProvider(), ProfileProvider())

    async def credentials(self) -> Credentials:
        errors = []
        for provider in self.providers:
            try:
                return await provider.credentials()
            except S3CredentialsError as e:
                errors.append(str(e))
        raise S3CredentialsError(
            "Couldn't find AWS credentials in any provider: " + "; ".join(errors)
        )
