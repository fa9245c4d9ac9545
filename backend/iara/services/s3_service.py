# iara/services/s3_service.py

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from typing import Optional

from iara.core.config import settings
from iara.core.logger import logger
from iara.utils.exceptions import UploadFailedError
from iara.utils.helpers import generate_storage_key


class S3Service:
    """
    Service layer for the attachment object store.
    """

    def __init__(self):
        self.s3_client = boto3.client(
            's3',
            region_name=settings.AWS_REGION,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            endpoint_url=settings.S3_ENDPOINT_URL or None,
        )
        self.bucket = settings.S3_BUCKET_NAME

    def object_url(self, s3_key: str) -> str:
        """Stable URL stored on the attachment row."""
        base = (settings.STORAGE_PUBLIC_BASE_URL or "").rstrip("/")
        if base:
            return f"{base}/{s3_key}"
        if settings.S3_ENDPOINT_URL:
            return f"{settings.S3_ENDPOINT_URL.rstrip('/')}/{self.bucket}/{s3_key}"
        return f"https://{self.bucket}.s3.{settings.AWS_REGION}.amazonaws.com/{s3_key}"

    def upload_file(
        self,
        data: bytes,
        filename: str,
        content_type: str,
    ) -> dict:
        """
        Store one file under a generated key and return its descriptor.
        """
        s3_key = generate_storage_key(filename, content_type)
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=s3_key,
                Body=data,
                ContentType=content_type,
                Metadata={"original-filename": filename.encode("ascii", "ignore").decode("ascii")},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to upload %s: %s", s3_key, str(e))
            raise UploadFailedError(str(e))

        logger.info("Uploaded %s (%d bytes) as %s", filename, len(data), s3_key)
        return {
            "filename": filename,
            "file_url": self.object_url(s3_key),
            "storage_key": s3_key,
            "content_type": content_type,
            "file_size": len(data),
        }

    def generate_download_url(
        self,
        s3_key: str,
        bucket: Optional[str] = None,
        expires_in: int = 3600
    ) -> str:
        """
        Generate pre-signed URL for GET operation (download).
        """
        try:
            url = self.s3_client.generate_presigned_url(
                'get_object',
                Params={
                    'Bucket': bucket or self.bucket,
                    'Key': s3_key
                },
                ExpiresIn=expires_in
            )

            logger.info("Generated download URL for: %s", s3_key)
            return url

        except ClientError as e:
            logger.error("Failed to generate download URL: %s", str(e))
            raise

    def delete_file(self, s3_key: str) -> bool:
        """
        Best-effort object removal; returns False instead of raising.
        """
        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=s3_key)
            logger.info("Deleted object: %s", s3_key)
            return True
        except ClientError as e:
            logger.error("Failed to delete object %s: %s", s3_key, str(e))
            return False

    def check_bucket(self) -> tuple[str, str]:
        """Returns (status, detail). Status is 'ok' or 'error'."""
        try:
            self.s3_client.head_bucket(Bucket=self.bucket)
            return "ok", f"Bucket '{self.bucket}' accessible"
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            return "error", f"S3: {code} - {str(e)}"
        except BotoCoreError as e:
            return "error", f"S3: {str(e)}"


s3_service = S3Service()
