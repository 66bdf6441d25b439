"""
Storage configuration for Shepherd.
Imported spreadsheets and generated statements go to S3 in production
and to the local media folder during development.
"""
import os
from pathlib import Path

USE_S3 = os.getenv('USE_S3_STORAGE', 'false').lower() == 'true'


def get_storage_settings(base_dir: Path) -> dict:
    """
    Returns storage-related settings to be merged into Django settings.

    Args:
        base_dir: The BASE_DIR from Django settings
    """
    if USE_S3:
        return {
            'STORAGES': {
                'default': {'BACKEND': 'storages.backends.s3boto3.S3Boto3Storage'},
                'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
            },
            'AWS_ACCESS_KEY_ID': os.getenv('AWS_ACCESS_KEY_ID'),
            'AWS_SECRET_ACCESS_KEY': os.getenv('AWS_SECRET_ACCESS_KEY'),
            'AWS_STORAGE_BUCKET_NAME': os.getenv('AWS_STORAGE_BUCKET_NAME', 'shepherd-uploads'),
            'AWS_S3_REGION_NAME': os.getenv('AWS_S3_REGION_NAME', 'us-east-1'),
            'AWS_S3_FILE_OVERWRITE': False,
            'AWS_DEFAULT_ACL': 'private',
            'AWS_S3_CUSTOM_DOMAIN': os.getenv('AWS_S3_CUSTOM_DOMAIN') or None,
            'AWS_QUERYSTRING_AUTH': True,  # signed URLs, every object is private
            'MEDIA_URL': '/media/',
        }

    return {
        'STORAGES': {
            'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
            'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
        },
        'MEDIA_URL': '/media/',
        'MEDIA_ROOT': base_dir / 'media',
    }


def is_s3_enabled() -> bool:
    """Check if S3 storage is enabled."""
    return USE_S3
