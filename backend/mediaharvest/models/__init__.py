from mediaharvest.models.media import Media, MEDIA_TYPE_IMAGE, MEDIA_TYPE_VIDEO

__all__ = [
    "Media",
    "MEDIA_TYPE_IMAGE",
    "MEDIA_TYPE_VIDEO",
]
