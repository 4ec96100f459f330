import pytest

from s3v2_client.client import S3Client
from s3v2_client.credentials import ChainProvider, StaticProvider
from s3v2_client.exceptions import S3CredentialsError, S3ValidationError
from s3v2_client.regions import CustomRegion, Region
from s3v2_client.transport import AiohttpDispatcher


class FailingProvider:
    def __init__(self, exc):
        self.exc = exc

    async def credentials(self):
        raise self.exc


def test_client_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("AWS_DEFAULT_REGION", "eu-west-3")
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "config"))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "credentials"))

    client = S3Client()

    assert client.region is Region.EU_WEST_3
    assert isinstance(client.credentials_provider, ChainProvider)
    assert isinstance(client.dispatcher, AiohttpDispatcher)


def test_client_ignores_malformed_profile(monkeypatch, tmp_path):
    config_file = tmp_path / "config"
    config_file.write_text("region = eu-west-1\n")
    monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)
    monkeypatch.delenv("AWS_REGION", raising=False)
    monkeypatch.delenv("AWS_PROFILE", raising=False)
    monkeypatch.setenv("AWS_CONFIG_FILE", str(config_file))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "credentials"))

    client = S3Client()

    assert client.region is Region.US_EAST_1


def test_client_region_from_string():
    client = S3Client("ap-northeast-1")
    assert client.region is Region.AP_NORTHEAST_1


@pytest.mark.asyncio
async def test_context_manager_closes_dispatcher(mock_client):
    async with mock_client as client:
        assert client is mock_client

    assert mock_client.mock_dispatcher.closed


@pytest.mark.asyncio
async def test_custom_region_request(make_mock_client):
    client = make_mock_client(region=CustomRegion("minio", "http://localhost:9000"))
    client.add_response("", headers={"ETag": '"e"'})

    await client.put_object("bucket", "a/b.txt", b"data")

    request = client.requests[0]
    assert request.scheme == "http"
    assert request.hostname == "localhost:9000"
    assert request.get_header("Host") == "localhost:9000"
    assert request.canonical_uri == "/bucket/a/b.txt"


@pytest.mark.asyncio
async def test_session_token_is_sent(make_mock_client):
    client = make_mock_client(
        credentials_provider=StaticProvider("AK", "SK", token="TOK")
    )
    client.add_response("")

    await client.create_bucket("bucket")

    assert client.requests[0].get_header("x-amz-security-token") == "TOK"


@pytest.mark.asyncio
async def test_credentials_error_propagates(make_mock_client):
    client = make_mock_client(
        credentials_provider=FailingProvider(S3CredentialsError("no creds"))
    )

    with pytest.raises(S3CredentialsError, match="no creds"):
        await client.create_bucket("bucket")

    assert client.requests == []


@pytest.mark.asyncio
async def test_other_provider_errors_are_wrapped(make_mock_client):
    client = make_mock_client(credentials_provider=FailingProvider(OSError("disk")))

    with pytest.raises(S3CredentialsError, match="Failed to load credentials: disk"):
        await client.create_bucket("bucket")


@pytest.mark.parametrize(
    "bucket",
    ["ab", "a" * 64, "UPPER", "-start", "end.", "a..b", "192.168.1.1", "under_score"],
)
@pytest.mark.asyncio
async def test_invalid_bucket_names(mock_client, bucket):
    with pytest.raises(S3ValidationError):
        await mock_client.list_objects(bucket)
