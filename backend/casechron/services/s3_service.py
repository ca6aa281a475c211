# casechron/services/s3_service.py

import boto3
from botocore.exceptions import ClientError
from datetime import datetime
from typing import Optional
from uuid import UUID

from casechron.core.config import settings
from casechron.core.logger import logger
from casechron.utils.helpers import safe_filename


class S3Service:
    """
    Service layer for AWS S3 operations on case documents.
    """

    def __init__(self, client=None):
        self._client = client
        self.bucket = settings.S3_BUCKET_NAME

    @property
    def s3_client(self):
        if self._client is None:
            self._client = boto3.client(
                's3',
                region_name=settings.AWS_REGION,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None
            )
        return self._client

    @staticmethod
    def build_document_key(case_id: UUID, filename: str) -> str:
        """
        cases/{case_id}/documents/{timestamp}_{safe_filename}
        """
        timestamp = datetime.utcnow().strftime("%Y%m%d%H%M%S%f")
        return f"cases/{case_id}/documents/{timestamp}_{safe_filename(filename)}"

    def public_url(self, s3_key: str) -> Optional[str]:
        base = settings.S3_PUBLIC_BASE_URL.rstrip("/")
        if not base:
            return None
        return f"{base}/{s3_key}"

    def put_object(
        self,
        s3_key: str,
        body: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[dict] = None
    ) -> None:
        """
        Upload bytes under s3_key.
        """
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=s3_key,
                Body=body,
                ContentType=content_type,
                Metadata=metadata or {}
            )
            logger.info("Object uploaded: %s (%d bytes)", s3_key, len(body))

        except ClientError as e:
            logger.error("Failed to upload object %s: %s", s3_key, e)
            raise

    def generate_download_url(
        self,
        s3_key: str,
        bucket: Optional[str] = None,
        expires_in: Optional[int] = None
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
                ExpiresIn=expires_in or settings.DOWNLOAD_URL_EXPIRES_SECONDS
            )

            logger.info("Generated download URL for: %s", s3_key)
            return url

        except ClientError as e:
            logger.error("Failed to generate download URL: %s", e)
            raise

    def delete_object(self, s3_key: str, bucket: Optional[str] = None):
        """
        Delete an object from S3.
        """
        try:
            self.s3_client.delete_object(
                Bucket=bucket or self.bucket,
                Key=s3_key
            )

            logger.info("Object deleted: %s", s3_key)

        except ClientError as e:
            logger.error("Failed to delete object: %s", e)
            raise


# Singleton instance
s3_service = S3Service()
