"""
上传回填的 CSV：原始请求体 → blob + 上传文件记录

请求体三种形态：
    - 纯文本：整个 body 就是 CSV
    - base64：解码后按 multipart 取出 CSV 部分
    - 非 base64 但 Content-Type 是 multipart/form-data：boundary 取自请求头
只取第一个 CSV 部分，不做通用 multipart 解析。
"""
from __future__ import annotations

import base64
import binascii
import logging
import re
import uuid
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.orm import Session

from app.db.model.image_update import CSVFileRecord, CSVFileStatus, CSVFileType
from app.infrastructure.storage import DatabaseBlobStore
from app.repository import image_update_repo as repo
from app.services.image_update.csv_codec import count_rows
from app.services.image_update.errors import (
    EmptyCSVError,
    ImageUpdateValidationError,
    MultipartBoundaryError,
    MultipartCSVNotFoundError,
)
from app.services.image_update.lifecycle import load_operation
from app.services.image_update.storage_keys import csv_file_name, csv_key
from app.utils.clock import now_utc


logger = logging.getLogger(__name__)


_BODY_BOUNDARY_RE = re.compile(r"--([a-zA-Z0-9]+)")
_HEADER_BOUNDARY_RE = re.compile(r"Content-Type: multipart/form-data; boundary=([^\r\n]+)")
_PARAM_BOUNDARY_RE = re.compile(r"boundary=\"?([^\";\r\n]+)\"?", re.IGNORECASE)

_CSV_PART_MARKERS = ("Content-Type: text/csv", 'name="csv"', "filename=")


@dataclass(frozen=True)
class IngestResult:
    success: bool
    records_processed: int
    file_id: str


def find_boundary(text: str) -> str:
    """优先 body 里第一个 --token，其次 multipart 的 Content-Type 行。"""
    m = _BODY_BOUNDARY_RE.search(text)
    if m:
        return m.group(1)
    m = _HEADER_BOUNDARY_RE.search(text)
    if m:
        return m.group(1).strip()
    raise MultipartBoundaryError()


def boundary_from_content_type(content_type: Optional[str]) -> Optional[str]:
    if not content_type or "multipart/form-data" not in content_type.lower():
        return None
    m = _PARAM_BOUNDARY_RE.search(content_type)
    return m.group(1).strip() if m else None


def extract_csv_part(text: str, boundary: Optional[str] = None) -> str:
    boundary = boundary or find_boundary(text)

    for part in text.split(f"--{boundary}"):
        if not part or not any(marker in part for marker in _CSV_PART_MARKERS):
            continue
        # 头部和内容之间的空行；有的客户端只用 \n
        for sep in ("\r\n\r\n", "\n\n"):
            idx = part.find(sep)
            if idx != -1:
                return part[idx + len(sep):].strip()

    raise MultipartCSVNotFoundError()


def _decode_base64(body: Union[str, bytes]) -> str:
    try:
        raw = base64.b64decode(body, validate=False)
    except (binascii.Error, ValueError) as e:
        raise ImageUpdateValidationError(f"Invalid base64 body: {e}") from e
    return raw.decode("utf-8", errors="replace")


def _as_text(body: Union[str, bytes]) -> str:
    return body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body


def extract_csv_content(
    body: Union[str, bytes, None],
    *,
    is_base64: bool = False,
    content_type: Optional[str] = None,
) -> str:
    if not body:
        raise ImageUpdateValidationError("No file uploaded")

    if is_base64:
        return extract_csv_part(_decode_base64(body))

    header_boundary = boundary_from_content_type(content_type)
    if header_boundary:
        return extract_csv_part(_as_text(body), header_boundary)

    return _as_text(body)


def ingest_upload(
    db: Session,
    blob_store: DatabaseBlobStore,
    operation_id: str,
    body: Union[str, bytes, None],
    *,
    is_base64: bool = False,
    content_type: Optional[str] = None,
    uploaded_by: Optional[str] = None,
) -> IngestResult:
    if not body:
        raise ImageUpdateValidationError("No file uploaded")
    load_operation(db, operation_id)

    csv_content = extract_csv_content(body, is_base64=is_base64, content_type=content_type)
    if not csv_content.strip():
        raise EmptyCSVError()

    record_count = count_rows(csv_content)
    file_id = str(uuid.uuid4())
    put = blob_store.put(
        csv_key(operation_id, CSVFileType.UPLOAD, file_id),
        csv_content,
        content_type="text/csv",
        metadata={
            "operation-id": operation_id,
            "file-type": CSVFileType.UPLOAD,
            "record-count": record_count,
        },
    )

    record = repo.save_file_record(db, CSVFileRecord(
        file_id=file_id,
        operation_id=operation_id,
        file_name=csv_file_name(operation_id, CSVFileType.UPLOAD),
        file_type=CSVFileType.UPLOAD,
        storage_key=put.key,
        storage_bucket=blob_store.bucket,
        file_size=put.size,
        record_count=record_count,
        uploaded_at=now_utc(),
        uploaded_by=uploaded_by,
        checksum=put.checksum,
        status=CSVFileStatus.PENDING,
    ))

    logger.info(
        "image_update.upload.stored operation_id=%s file_id=%s records=%s base64=%s",
        operation_id, record.file_id, record_count, is_base64,
    )
    return IngestResult(success=True, records_processed=record_count, file_id=record.file_id)
