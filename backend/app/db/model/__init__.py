# 聚合导入所有模型，供 Alembic 发现

from .image_update import (
    BlobObject,
    CSVFileRecord,
    CSVFileStatus,
    CSVFileType,
    ImageUpdateOperation,
    OperationStatus,
)

__all__ = [
    "ImageUpdateOperation", "OperationStatus",
    "CSVFileRecord", "CSVFileType", "CSVFileStatus",
    "BlobObject",
]
