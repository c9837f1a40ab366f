"""
Tests for the S3 object store.
"""
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from upload_pipeline.errors import NameCollisionError, StorageError
from upload_pipeline.storage import S3ObjectStore, is_collision_error


def _client_error(code, message="Test error", status=400, operation="PutObject"):
    return ClientError(
        {
            'Error': {
                'Code': code,
                'Message': message
            },
            'ResponseMetadata': {'HTTPStatusCode': status}
        },
        operation
    )


def test_put_writes_object_with_content_type(s3_store, mock_aws):
    """Test that put stores bytes and content type in the bucket."""
    path = s3_store.put("1-abcdef-test.txt", b"test content", "text/plain")

    assert path == "1-abcdef-test.txt"
    obj = mock_aws.get_object(Bucket="test-bucket", Key=path)
    assert obj['Body'].read() == b"test content"
    assert obj['ContentType'] == "text/plain"


def test_put_without_overwrite_sends_if_none_match():
    """Test that the no-overwrite flag becomes a conditional write."""
    mock_client = MagicMock()
    store = S3ObjectStore("test-bucket", client=mock_client)

    store.put("a.txt", b"abc", "text/plain")
    store.put("b.txt", b"abc", "text/plain", overwrite=True)

    first = mock_client.put_object.call_args_list[0].kwargs
    second = mock_client.put_object.call_args_list[1].kwargs
    assert first['IfNoneMatch'] == '*'
    assert 'IfNoneMatch' not in second
    assert first['Bucket'] == "test-bucket"
    assert first['ContentType'] == "text/plain"


def test_put_maps_precondition_failure_to_collision():
    """Test that an existing key surfaces as a name collision."""
    mock_client = MagicMock()
    mock_client.put_object.side_effect = _client_error(
        'PreconditionFailed', 'At least one of the pre-conditions you specified did not hold', 412
    )
    store = S3ObjectStore("test-bucket", client=mock_client)

    with pytest.raises(NameCollisionError):
        store.put("taken.txt", b"abc", "text/plain")


def test_put_maps_other_client_errors_to_storage_error():
    """Test that store failures carry the provider message."""
    mock_client = MagicMock()
    mock_client.put_object.side_effect = _client_error('AccessDenied', 'Access denied', 403)
    store = S3ObjectStore("test-bucket", client=mock_client)

    with pytest.raises(StorageError) as exc_info:
        store.put("a.txt", b"abc", "text/plain")

    assert not isinstance(exc_info.value, NameCollisionError)
    assert exc_info.value.message == "Access denied"
    assert mock_client.put_object.call_count == 1


def test_put_maps_transport_errors_to_storage_error():
    mock_client = MagicMock()
    mock_client.put_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.invalid")
    store = S3ObjectStore("test-bucket", client=mock_client)

    with pytest.raises(StorageError) as exc_info:
        store.put("a.txt", b"abc", "text/plain")

    assert "s3.invalid" in exc_info.value.message


def test_public_url_uses_configured_base(s3_store):
    assert s3_store.public_url("1-abcdef-a b.txt") == \
        "https://cdn.example.com/uploads/1-abcdef-a%20b.txt"


def test_public_url_defaults_to_bucket_host():
    mock_client = MagicMock()
    mock_client.meta.region_name = "eu-west-1"
    store = S3ObjectStore("media", client=mock_client)

    assert store.public_url("1-abcdef-a.txt") == \
        "https://media.s3.eu-west-1.amazonaws.com/1-abcdef-a.txt"


def test_store_requires_bucket():
    with pytest.raises(ValueError):
        S3ObjectStore("", client=MagicMock())


def test_is_collision_error():
    """Test error classification for name collisions."""
    collision_codes = [
        ('PreconditionFailed', 412),
        ('ConditionalRequestConflict', 409),
    ]

    other_codes = [
        ('AccessDenied', 403),
        ('NoSuchBucket', 404),
        ('InternalError', 500)
    ]

    for code, status in collision_codes:
        assert is_collision_error(_client_error(code, status=status))

    for code, status in other_codes:
        assert not is_collision_error(_client_error(code, status=status))

    assert not is_collision_error(ValueError("boom"))
