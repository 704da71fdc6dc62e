import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import cloudinary
import cloudinary.api
import cloudinary.uploader
import cloudinary.exceptions
import logging

# Set up logger for this module
logger = logging.getLogger(__name__)

DEFAULT_AVATAR_BASE = "https://ui-avatars.com/api/"
EXTERNAL_ID_PREFIX = "external_"


class MediaStoreError(Exception):
    """Raised when the media store rejects an upload or deletion."""


@dataclass(frozen=True)
class UploadedMedia:
    public_id: str
    url: str


def default_avatar_url(email: str, background: str = "random") -> str:
    """
    Deterministic avatar picture built from the local part of an email.
    """
    name = quote(email.split("@")[0], safe="")
    return f"{DEFAULT_AVATAR_BASE}?name={name}&background={background}&color=fff&size=200"


def external_media(url: str, kind: str = "default") -> UploadedMedia:
    """Reference a picture that was never copied into the media store."""
    return UploadedMedia(public_id=f"{EXTERNAL_ID_PREFIX}{kind}_{int(time.time() * 1000)}", url=url)


def is_external(public_id: Optional[str]) -> bool:
    return bool(public_id) and public_id.startswith(EXTERNAL_ID_PREFIX)


class MediaStore:
    """Interface for avatar storage."""

    def upload(self, source, folder: str, public_id: Optional[str] = None) -> UploadedMedia:
        raise NotImplementedError

    def destroy(self, public_id: str) -> None:
        raise NotImplementedError

    def ping(self) -> bool:
        return True


class CloudinaryMediaStore(MediaStore):
    """
    Uploads avatars to Cloudinary.

    Every failure is reported as MediaStoreError so callers can decide to
    fall back instead of failing the whole operation.
    """
    def __init__(self, cloud_name: str, api_key: str, api_secret: str):
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )

    def upload(self, source, folder: str, public_id: Optional[str] = None) -> UploadedMedia:
        options = {"folder": folder, "width": 150, "overwrite": True, "resource_type": "image"}
        if public_id:
            options["public_id"] = public_id
        try:
            result = cloudinary.uploader.upload(source, **options)
        except cloudinary.exceptions.Error as e:
            logger.error(f"Cloudinary API error during avatar upload: {str(e)}")
            raise MediaStoreError(str(e)) from e
        except Exception as e:
            logger.error(f"Unexpected error during avatar upload to Cloudinary: {str(e)}")
            raise MediaStoreError(str(e)) from e

        secure_url = result.get("secure_url")
        if not secure_url:
            logger.error("Cloudinary upload result did not contain a secure_url.")
            raise MediaStoreError("Upload result did not contain a URL")
        logger.info(f"Successfully uploaded image to Cloudinary. URL: {secure_url}")
        return UploadedMedia(public_id=result.get("public_id", public_id or ""), url=secure_url)

    def destroy(self, public_id: str) -> None:
        try:
            cloudinary.uploader.destroy(public_id)
        except Exception as e:
            logger.error(f"Could not delete Cloudinary asset {public_id}: {str(e)}")
            raise MediaStoreError(str(e)) from e

    def ping(self) -> bool:
        try:
            cloudinary.api.ping()
            return True
        except Exception as e:
            logger.error(f"Cloudinary health check failed: {str(e)}")
            return False


class UnconfiguredMediaStore(MediaStore):
    """Used when no Cloudinary credentials are configured; every upload falls back."""

    def upload(self, source, folder: str, public_id: Optional[str] = None) -> UploadedMedia:
        raise MediaStoreError("Media store is not configured")

    def destroy(self, public_id: str) -> None:
        raise MediaStoreError("Media store is not configured")


def create_media_store(settings) -> MediaStore:
    if settings.cloudinary_configured:
        return CloudinaryMediaStore(
            settings.cloudinary_cloud_name,
            settings.cloudinary_api_key,
            settings.cloudinary_api_secret,
        )
    logger.warning("Cloudinary credentials are not set; avatars will reference external URLs")
    return UnconfiguredMediaStore()
