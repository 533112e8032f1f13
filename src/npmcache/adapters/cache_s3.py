"""S3-compatible object storage cache adapter."""

from typing import Any, BinaryIO

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from ..core.errors import ConfigError

CONTENT_TYPE = "application/octet-stream"

# head_object reports a missing key with the bare HTTP status
_MISSING_KEY_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def _endpoint_url(endpoint: str | None, use_tls: bool) -> str | None:
    """Accept both ``host:port`` and full URLs for the endpoint."""
    if not endpoint:
        return None
    if "://" in endpoint:
        return endpoint
    scheme = "https" if use_tls else "http"
    return f"{scheme}://{endpoint}"


class S3CacheAdapter:
    """Stores archives as objects named by cache key in one bucket.

    Works against AWS S3 and S3-compatible services such as MinIO.
    """

    name = "s3"

    def __init__(
        self,
        bucket: str,
        endpoint: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        region: str | None = None,
        use_tls: bool = True,
        insecure_tls: bool = False,
        client: Any = None,
    ):
        """Initialize with a bucket and connection parameters.

        Args:
            bucket: Bucket holding the cache objects.
            endpoint: Endpoint as ``host:port`` or URL; None for AWS.
            access_key_id: Static access key; None uses the default credential chain.
            secret_access_key: Static secret key.
            region: Region name.
            use_tls: Connect over HTTPS.
            insecure_tls: Skip certificate verification (self-signed deployments).
            client: Pre-built client, mainly for tests.
        """
        if not bucket:
            raise ConfigError("no S3 bucket given")
        self.bucket = bucket
        self.endpoint_url = _endpoint_url(endpoint, use_tls)

        if client is None:
            client = boto3.client(
                "s3",
                endpoint_url=self.endpoint_url,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                region_name=region,
                use_ssl=use_tls,
                verify=False if insecure_tls else None,
                config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
            )
        self.client = client

    def has(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES:
                return False
            raise
        return True

    def get(self, key: str) -> BinaryIO:
        response: dict[str, Any] = self.client.get_object(Bucket=self.bucket, Key=key)
        body: BinaryIO = response["Body"]
        return body

    def put(self, key: str, stream: BinaryIO) -> None:
        # upload_fileobj switches to multipart upload for large streams
        self.client.upload_fileobj(
            stream,
            self.bucket,
            key,
            ExtraArgs={"ContentType": CONTENT_TYPE},
        )

    def __repr__(self) -> str:
        return f"S3CacheAdapter(bucket={self.bucket!r}, endpoint={self.endpoint_url!r})"
