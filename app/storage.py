"""
Object storage for version artifacts (S3 compatible, e.g. MinIO).
Only download link generation is needed by the catalog.
"""

import logging

import boto3
from botocore.config import Config

logger = logging.getLogger("main")


class StorageClient:
    """Generates time limited download links for stored objects"""

    def __init__(self, bucket, endpoint_url=None, region="us-east-1", link_expiry=3600, client=None):
        """
        Args:
            bucket: Bucket holding version artifacts
            endpoint_url: S3 endpoint, None for AWS
            region: Bucket region
            link_expiry: Lifetime of generated links in seconds
            client: Preconfigured boto3 S3 client
        """
        self.bucket = bucket
        self.link_expiry = link_expiry
        if client is None:
            client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                region_name=region,
                config=Config(signature_version="s3v4"),
            )
        self.s3_client = client

    @classmethod
    def from_settings(cls, storage_settings):
        return cls(
            bucket=storage_settings["bucket"],
            endpoint_url=storage_settings.get("endpoint_url"),
            region=storage_settings.get("region", "us-east-1"),
            link_expiry=storage_settings.get("link_expiry", 3600),
        )

    def generate_download_link(self, key: str) -> str:
        """Presigned GET URL for key, valid for link_expiry seconds"""
        url = self.s3_client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=self.link_expiry,
        )
        logger.debug(f"Generated download link for s3://{self.bucket}/{key}")
        return url
