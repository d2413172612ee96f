import io
from typing import BinaryIO, Optional
import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from propflow.config import get_settings
from propflow.core.retries import with_retries


def get_s3_client():
    s = get_settings()
    kwargs = {
        "aws_access_key_id": s.object_storage_access_key,
        "aws_secret_access_key": s.object_storage_secret_key,
        "config": Config(signature_version="s3v4"),
        "region_name": s.storage_region,
    }
    # AWS S3: no endpoint_url (use default). MinIO/R2: set endpoint_url and use_ssl.
    if s.object_storage_url:
        kwargs["endpoint_url"] = s.object_storage_url
        kwargs["use_ssl"] = s.object_storage_use_ssl
    return boto3.client("s3", **kwargs)


def ensure_bucket(client) -> None:
    s = get_settings()
    bucket = s.object_storage_bucket
    try:
        client.head_bucket(Bucket=bucket)
    except ClientError as e:
        # Only create for MinIO/R2. On AWS the bucket must already exist.
        if not s.object_storage_url:
            raise RuntimeError(f"Bucket {bucket} not found. Create it in the {s.storage_region} console first.") from e
        client.create_bucket(Bucket=bucket)


def upload_file(
    key: str,
    body: BinaryIO,
    content_type: str = "application/octet-stream",
    metadata: Optional[dict] = None,
) -> str:
    client = get_s3_client()
    ensure_bucket(client)
    bucket = get_settings().object_storage_bucket
    extra = {"ContentType": content_type}
    if metadata:
        extra["Metadata"] = {k: str(v) for k, v in metadata.items()}
    client.upload_fileobj(body, bucket, key, ExtraArgs=extra)
    return key


def generate_import_key(organization_id: str, job_id: str, filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    return f"organizations/{organization_id}/imports/{job_id}.{ext}"


def archive_import_file(
    organization_id: str,
    job_id: str,
    filename: str,
    content: bytes,
    content_type: str | None = None,
) -> str:
    """Store the raw upload; returns the object key recorded on the job."""
    key = generate_import_key(organization_id, job_id, filename)
    return with_retries(
        lambda: upload_file(
            key,
            io.BytesIO(content),
            content_type=content_type or "application/octet-stream",
            metadata={"job_id": job_id, "file_name": filename},
        )
    )
