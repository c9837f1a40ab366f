"""
Test fixtures for the upload pipeline.
"""
import boto3
import httpx
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws as moto_mock_aws

from upload_pipeline.api import create_app
from upload_pipeline.config import ClientConfig, ServiceConfig
from upload_pipeline.models import FilePayload
from upload_pipeline.storage import S3ObjectStore

PUBLIC_BASE_URL = "https://cdn.example.com/uploads"


@pytest.fixture
def aws_credentials(monkeypatch):
    """Point boto3 at fake credentials so nothing reaches AWS."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def mock_aws(aws_credentials):
    """Mock S3 client using moto."""
    with moto_mock_aws():
        s3 = boto3.client('s3', region_name='us-east-1')
        # Create test bucket
        s3.create_bucket(Bucket='test-bucket')
        yield s3


@pytest.fixture
def service_config():
    return ServiceConfig(
        bucket="test-bucket",
        region="us-east-1",
        public_base_url=PUBLIC_BASE_URL
    )


@pytest.fixture
def s3_store(mock_aws):
    """Create a test S3 object store backed by moto."""
    return S3ObjectStore(
        bucket="test-bucket",
        region="us-east-1",
        public_base_url=PUBLIC_BASE_URL
    )


@pytest.fixture
def app(service_config, s3_store):
    return create_app(service_config, store=s3_store)


@pytest.fixture
def test_client(app):
    return TestClient(app)


@pytest.fixture
def make_payload():
    """Build in-memory file payloads of a given size."""
    def _make(name="photo.png", size=1024, content_type="image/png"):
        return FilePayload(
            name=name,
            size=size,
            content_type=content_type,
            content=b"x" * size
        )
    return _make


@pytest.fixture
def client_config():
    """Client config with a fast progress ticker."""
    return ClientConfig(base_url="http://testserver", progress_interval=0.01)


@pytest.fixture
def ok_response():
    def _ok(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={
            "success": True,
            "message": "File uploaded successfully",
            "file": {
                "name": "photo.png",
                "size": 1024,
                "type": "image/png",
                "path": "1700000000000-abc123-photo.png",
                "url": f"{PUBLIC_BASE_URL}/1700000000000-abc123-photo.png"
            }
        })
    return _ok


class CountingTransport(httpx.MockTransport):
    """Mock transport that records every request it receives."""

    def __init__(self, handler):
        self.requests = []

        async def _record(request):
            self.requests.append(request)
            response = handler(request)
            if not isinstance(response, httpx.Response):
                response = await response
            return response

        super().__init__(_record)


@pytest.fixture
def counting_transport():
    return CountingTransport


