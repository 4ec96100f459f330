import datetime as dt
import pathlib

import pytest

from s3v2_client.credentials import (
    ChainProvider,
    Credentials,
    EnvironmentProvider,
    ProfileProvider,
    StaticProvider,
)
from s3v2_client.exceptions import S3CredentialsError

NOW = dt.datetime(2024, 5, 1, 12, 0, 0, tzinfo=dt.UTC)


class TestCredentials:
    def test_never_expires_without_expiry(self):
        assert not Credentials("AK", "SK").is_expired(NOW)

    def test_expiry_margin(self):
        credentials = Credentials("AK", "SK", expires_at=NOW + dt.timedelta(seconds=20))
        assert credentials.is_expired(NOW)
        assert not credentials.is_expired(NOW - dt.timedelta(seconds=1))

    def test_repr_hides_secrets(self):
        text = repr(Credentials("AK", "SECRET", token="TOKEN"))
        assert "AK" in text
        assert "SECRET" not in text
        assert "TOKEN" not in text


@pytest.mark.asyncio
async def test_static_provider():
    provider = StaticProvider("AK", "SK", token="T")
    credentials = await provider.credentials()
    assert credentials == Credentials("AK", "SK", "T")


@pytest.mark.asyncio
async def test_static_provider_valid_for_stamps_expiry():
    provider = StaticProvider("AK", "SK", valid_for=3600)
    credentials = await provider.credentials()
    assert credentials.expires_at is not None
    assert not credentials.is_expired()


class TestEnvironmentProvider:
    @pytest.mark.asyncio
    async def test_reads_variables(self):
        env = {
            "AWS_ACCESS_KEY_ID": "AK",
            "AWS_SECRET_ACCESS_KEY": "SK",
            "AWS_SESSION_TOKEN": "T",
            "AWS_CREDENTIAL_EXPIRATION": "2024-05-01T13:00:00Z",
        }
        credentials = await EnvironmentProvider(env_reader=env.get).credentials()

        assert credentials.access_key == "AK"
        assert credentials.secret_key == "SK"
        assert credentials.token == "T"
        assert credentials.expires_at == dt.datetime(2024, 5, 1, 13, tzinfo=dt.UTC)

    @pytest.mark.asyncio
    async def test_custom_prefix(self):
        env = {"MINIO_ACCESS_KEY_ID": "AK", "MINIO_SECRET_ACCESS_KEY": "SK"}
        provider = EnvironmentProvider("MINIO", env_reader=env.get)

        credentials = await provider.credentials()

        assert credentials == Credentials("AK", "SK")

    @pytest.mark.asyncio
    async def test_missing_secret(self):
        env = {"AWS_ACCESS_KEY_ID": "AK", "AWS_SECRET_ACCESS_KEY": ""}
        with pytest.raises(S3CredentialsError, match="AWS_SECRET_ACCESS_KEY"):
            await EnvironmentProvider(env_reader=env.get).credentials()

    @pytest.mark.asyncio
    async def test_invalid_expiration(self):
        env = {
            "AWS_ACCESS_KEY_ID": "AK",
            "AWS_SECRET_ACCESS_KEY": "SK",
            "AWS_CREDENTIAL_EXPIRATION": "tomorrow",
        }
        with pytest.raises(S3CredentialsError, match="AWS_CREDENTIAL_EXPIRATION"):
            await EnvironmentProvider(env_reader=env.get).credentials()


class TestProfileProvider:
    @pytest.fixture
    def aws_files(self, tmp_path: pathlib.Path):
        credentials_file = tmp_path / "credentials"
        credentials_file.write_text("""[default]
aws_access_key_id = DEFAULTKEY
aws_secret_access_key = DEFAULTSECRET

[dev]
aws_access_key_id = DEVKEY
aws_secret_access_key = DEVSECRET
aws_session_token = DEVTOKEN
region = us-west-1
""")
        config_file = tmp_path / "config"
        config_file.write_text("""[default]
region = eu-central-1

[profile dev]
region = eu-west-1
endpoint_url = http://localhost:9000
""")
        return config_file, credentials_file

    @pytest.mark.asyncio
    async def test_default_profile(self, aws_files):
        config_file, credentials_file = aws_files
        provider = ProfileProvider("default", config_file, credentials_file)

        credentials = await provider.credentials()

        assert credentials == Credentials("DEFAULTKEY", "DEFAULTSECRET")
        assert provider.region() == "eu-central-1"
        assert provider.endpoint_url() is None

    @pytest.mark.asyncio
    async def test_named_profile_credentials_file_wins(self, aws_files):
        config_file, credentials_file = aws_files
        provider = ProfileProvider("dev", config_file, credentials_file)

        credentials = await provider.credentials()

        assert credentials == Credentials("DEVKEY", "DEVSECRET", "DEVTOKEN")
        assert provider.region() == "us-west-1"
        assert provider.endpoint_url() == "http://localhost:9000"

    @pytest.mark.asyncio
    async def test_missing_profile(self, aws_files):
        config_file, credentials_file = aws_files
        provider = ProfileProvider("nope", config_file, credentials_file)

        with pytest.raises(S3CredentialsError, match="aws_access_key_id not found"):
            await provider.credentials()

    @pytest.mark.asyncio
    async def test_malformed_file(self, tmp_path):
        config_file = tmp_path / "config"
        config_file.write_text("region = eu-west-1\n")
        provider = ProfileProvider("default", config_file, tmp_path / "credentials")

        with pytest.raises(S3CredentialsError, match="Cannot read AWS profile files"):
            provider.region()
        with pytest.raises(S3CredentialsError, match="Cannot read AWS profile files"):
            await provider.credentials()

    @pytest.mark.asyncio
    async def test_missing_files(self, tmp_path):
        provider = ProfileProvider(
            "default", tmp_path / "config", tmp_path / "credentials"
        )
        assert provider.region() is None
        with pytest.raises(S3CredentialsError):
            await provider.credentials()

    def test_environment_overrides(self, monkeypatch, aws_files):
        config_file, credentials_file = aws_files
        monkeypatch.setenv("AWS_PROFILE", "dev")
        monkeypatch.setenv("AWS_CONFIG_FILE", str(config_file))
        monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(credentials_file))

        provider = ProfileProvider()

        assert provider.profile_name == "dev"
        assert provider.config_path == config_file
        assert provider.credentials_path == credentials_file


class TestChainProvider:
    @pytest.mark.asyncio
    async def test_first_provider_wins(self):
        chain = ChainProvider(StaticProvider("A", "1"), StaticProvider("B", "2"))
        credentials = await chain.credentials()
        assert credentials.access_key == "A"

    @pytest.mark.asyncio
    async def test_falls_through_credentials_errors(self):
        chain = ChainProvider(
            EnvironmentProvider(env_reader={}.get), StaticProvider("B", "2")
        )
        credentials = await chain.credentials()
        assert credentials.access_key == "B"

    @pytest.mark.asyncio
    async def test_all_providers_fail(self, tmp_path):
        chain = ChainProvider(
            EnvironmentProvider(env_reader={}.get),
            ProfileProvider("default", tmp_path / "c", tmp_path / "cr"),
        )
        with pytest.raises(S3CredentialsError, match="any provider"):
            await chain.credentials()
