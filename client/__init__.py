"""Клиентская часть фотогалереи: REST-клиент, очередь загрузки, галерея, редактор и лента воспоминаний."""

from client.api_client import GalleryAPIError, GalleryClient
from client.gallery import BulkResult, PhotoGallery
from client.image_editor import ImageEditor
from client.memories import Memory, MemoriesTimeline, build_memories
from client.photo import Photo
from client.upload_manager import UploadManager, UploadStatus, build_photo_uploader

__all__ = [
    "GalleryAPIError",
    "GalleryClient",
    "BulkResult",
    "PhotoGallery",
    "ImageEditor",
    "Memory",
    "MemoriesTimeline",
    "build_memories",
    "Photo",
    "UploadManager",
    "UploadStatus",
    "build_photo_uploader",
]
