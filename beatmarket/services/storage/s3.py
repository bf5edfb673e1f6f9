"""S3 storage service for beat media, stems and license contracts."""
import boto3
from botocore.client import Config
from botocore.exceptions import ClientError, BotoCoreError
from typing import Optional, Dict
import logging
import posixpath

from beatmarket.app.config import settings

logger = logging.getLogger(__name__)


class S3ServiceError(Exception):
    """Custom exception for S3 service errors."""
    pass


# Folder scheme: purpose first, then owning entity id
PREVIEW_PREFIX = "previews"
COVER_PREFIX = "covers"
BEAT_FILES_PREFIX = "beats"
CONTRACT_PREFIX = "contracts"


def preview_key(beat_id: str, filename: str) -> str:
    return f"{PREVIEW_PREFIX}/{beat_id}/preview{_extension(filename, 'mp3')}"


def cover_key(beat_id: str, filename: str) -> str:
    return f"{COVER_PREFIX}/{beat_id}/cover{_extension(filename, 'jpg')}"


def beat_file_key(beat_id: str, kind: str, filename: str) -> str:
    """beats/{beat_id}/{kind}.{ext}"""
    default = {'mp3': 'mp3', 'wav': 'wav', 'stems': 'zip'}.get(kind, 'bin')
    return f"{BEAT_FILES_PREFIX}/{beat_id}/{kind}{_extension(filename, default)}"


def contract_key(order_number: str, beat_id: str) -> str:
    """contracts/{order_number}/{beat_id}.pdf"""
    return f"{CONTRACT_PREFIX}/{order_number}/{beat_id}.pdf"


def _extension(filename: Optional[str], default: str) -> str:
    ext = posixpath.splitext(filename or '')[1].lower()
    return ext if ext else f".{default}"


class S3Service:
    """Service for S3 operations with comprehensive error handling."""

    def __init__(self):
        """Initialize S3 client with configuration."""
        try:
            self.s3_client = boto3.client(
                's3',
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region_name=settings.S3_REGION,
                endpoint_url=settings.S3_ENDPOINT_URL,
                config=Config(
                    signature_version='s3v4',
                    s3={'addressing_style': 'virtual'}
                )
            )
            self.bucket_name = settings.S3_BUCKET_NAME
            logger.info(f"S3 Service initialized for bucket: {self.bucket_name}")
        except (BotoCoreError, ValueError) as e:
            logger.error(f"Failed to initialize S3 client: {e}")
            raise S3ServiceError(f"S3 initialization failed: {str(e)}")

    def upload_file(
        self,
        s3_key: str,
        file_data: bytes,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None
    ) -> str:
        """
        Upload bytes to S3.

        Args:
            s3_key: Destination object key
            file_data: Raw bytes
            content_type: MIME type
            metadata: Optional user metadata

        Returns:
            The object key, which is what callers persist

        Raises:
            S3ServiceError: If upload fails
        """
        try:
            params = {
                'Bucket': self.bucket_name,
                'Key': s3_key,
                'Body': file_data,
                'ContentType': content_type
            }

            if metadata:
                params['Metadata'] = metadata

            self.s3_client.put_object(**params)
            logger.info(f"Uploaded {len(file_data)} bytes to: {s3_key}")
            return s3_key

        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading file {s3_key}: {e}")
            raise S3ServiceError(f"Failed to upload file: {str(e)}")

    def generate_presigned_download_url(
        self,
        s3_key: str,
        expires_in: int = None,
        filename: Optional[str] = None,
        inline: bool = False
    ) -> str:
        """
        Generate presigned URL for download.

        Args:
            s3_key: S3 object key
            expires_in: URL expiration in seconds (defaults to DOWNLOAD_URL_TTL_SECONDS)
            filename: Optional filename for Content-Disposition header
            inline: If True, display in browser; if False, force download

        Returns:
            Presigned download URL

        Raises:
            S3ServiceError: If URL generation fails
        """
        expires_in = expires_in or settings.DOWNLOAD_URL_TTL_SECONDS
        filename = filename or posixpath.basename(s3_key)
        disposition = f'inline; filename="{filename}"' if inline else f'attachment; filename="{filename}"'
        try:
            url = self.s3_client.generate_presigned_url(
                'get_object',
                Params={
                    'Bucket': self.bucket_name,
                    'Key': s3_key,
                    'ResponseContentDisposition': disposition,
                },
                ExpiresIn=expires_in
            )

            logger.debug(f"Generated download URL for: {s3_key}")
            return url

        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error generating download URL: {e}")
            raise S3ServiceError(f"Failed to generate download URL: {str(e)}")

    def public_url(self, s3_key: Optional[str]) -> Optional[str]:
        """Public (CDN or bucket) URL for previews and covers."""
        if not s3_key:
            return None
        base = settings.S3_PUBLIC_BASE_URL or (
            f"https://{self.bucket_name}.s3.{settings.S3_REGION}.amazonaws.com"
        )
        return f"{base.rstrip('/')}/{s3_key}"

    def delete_object(self, s3_key: str) -> None:
        """
        Delete object from S3.

        Raises:
            S3ServiceError: If deletion fails
        """
        try:
            self.s3_client.delete_object(
                Bucket=self.bucket_name,
                Key=s3_key
            )
            logger.info(f"Deleted S3 object: {s3_key}")

        except ClientError as e:
            logger.error(f"Error deleting object: {e}")
            raise S3ServiceError(f"Failed to delete object: {str(e)}")


_s3_service: Optional[S3Service] = None


def get_storage() -> S3Service:
    """Lazily created process-wide S3 service (FastAPI dependency)."""
    global _s3_service
    if _s3_service is None:
        _s3_service = S3Service()
    return _s3_service
