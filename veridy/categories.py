"""File-type classification for listings.

Both lookups are total: any input, including empty or unknown strings,
maps to a value.
"""

from enum import Enum


class DataCategory(str, Enum):
    IMAGES = "images"
    VIDEOS = "videos"
    DOCUMENTS = "documents"
    AUDIO = "audio"
    MODELS_3D = "3d-models"
    DATASETS = "datasets"
    CODE = "code"
    OTHER = "other"

    @property
    def label(self) -> str:
        return self.value.replace("-", " ").upper()


_EXTENSIONS: dict[DataCategory, tuple[str, ...]] = {
    DataCategory.IMAGES: ("jpg", "jpeg", "png", "gif", "webp", "bmp", "svg", "tiff", "heic"),
    DataCategory.VIDEOS: ("mp4", "mov", "avi", "mkv", "webm"),
    DataCategory.DOCUMENTS: ("pdf", "doc", "docx", "txt", "md", "rtf", "odt", "epub"),
    DataCategory.AUDIO: ("mp3", "wav", "flac", "ogg", "m4a", "aac"),
    DataCategory.MODELS_3D: ("obj", "stl", "fbx", "glb", "gltf", "blend"),
    DataCategory.DATASETS: ("csv", "json", "parquet", "xlsx", "xls", "tsv", "jsonl", "sqlite"),
    DataCategory.CODE: ("py", "js", "ts", "go", "rs", "java", "c", "cpp", "h", "sol", "ipynb"),
}

_CATEGORY_BY_EXTENSION = {ext: category for category, exts in _EXTENSIONS.items() for ext in exts}

_CATEGORY_BY_MIME_PREFIX = {
    "image/": DataCategory.IMAGES,
    "video/": DataCategory.VIDEOS,
    "audio/": DataCategory.AUDIO,
    "model/": DataCategory.MODELS_3D,
}

_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "pdf": "application/pdf",
    "csv": "text/csv",
    "json": "application/json",
    "txt": "text/plain",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "mp4": "video/mp4",
    "zip": "application/zip",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def normalize_file_type(file_type: str | None) -> str:
    """Reduce ``"PNG"``, ``".png"`` or ``"photo.png"`` to ``"png"``."""
    if not file_type:
        return ""
    cleaned = file_type.strip().lower()
    if "/" in cleaned:
        return cleaned
    return cleaned.rsplit(".", 1)[-1]


def category_for_file_type(file_type: str | None) -> DataCategory:
    normalized = normalize_file_type(file_type)
    if "/" in normalized:
        for prefix, category in _CATEGORY_BY_MIME_PREFIX.items():
            if normalized.startswith(prefix):
                return category
        if normalized in ("application/json", "text/csv"):
            return DataCategory.DATASETS
        if normalized in ("application/pdf", "text/plain"):
            return DataCategory.DOCUMENTS
        return DataCategory.OTHER
    return _CATEGORY_BY_EXTENSION.get(normalized, DataCategory.OTHER)


def mime_type_for(file_type: str | None) -> str:
    normalized = normalize_file_type(file_type)
    if "/" in normalized:
        return normalized
    return _MIME_TYPES.get(normalized, DEFAULT_MIME_TYPE)
