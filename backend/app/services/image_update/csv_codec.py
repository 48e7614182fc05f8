"""
CSV 编解码：换图模板 / 上传文件 ↔ ImageUpdateCSVRow

格式约定（与模板下载、上传回填共用）：
    - 固定 5 列，顺序固定；表头行只作说明，解码时不按表头名对列
    - 编码不加引号、不转义，值原样拼接（值里有逗号会错列，由模板内容保证不出现）
    - 解码按行切分，空白行丢弃；引号只用来包住含逗号的字段，本身不保留
"""
from __future__ import annotations

from dataclasses import astuple, dataclass
from typing import Iterable, List, Sequence

from app.services.image_update.errors import EmptyCSVError


CSV_HEADERS: List[str] = [
    "product_id",
    "product_handle",
    "current_image_id",
    "collection_name",
    "new_image_url",
]


@dataclass(frozen=True)
class ImageUpdateCSVRow:
    product_id: str
    product_handle: str = ""
    current_image_id: str = ""      # 空 = 该槽位原本没有图
    collection_name: str = ""
    new_image_url: str = ""         # 空 = 该槽位没填

    def values(self) -> List[str]:
        return list(astuple(self))


def encode_rows(rows: Iterable[ImageUpdateCSVRow], headers: Sequence[str] = CSV_HEADERS) -> str:
    lines = [",".join(headers)]
    lines.extend(",".join(row.values()) for row in rows)
    return "\n".join(lines)


def parse_csv_line(line: str) -> List[str]:
    """逐字符扫描：引号切换 in_quotes 且不输出；引号外的逗号分列；每列去首尾空白。"""
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False

    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)

    fields.append("".join(current).strip())
    return fields


def _content_lines(text: str) -> List[str]:
    return [line for line in (text or "").split("\n") if line.strip()]


def decode_rows(text: str) -> List[ImageUpdateCSVRow]:
    lines = _content_lines(text)
    if not lines:
        raise EmptyCSVError()

    rows: List[ImageUpdateCSVRow] = []
    width = len(CSV_HEADERS)
    # 第一行是表头
    for line in lines[1:]:
        values = parse_csv_line(line)
        values = (values + [""] * width)[:width]
        rows.append(ImageUpdateCSVRow(*values))
    return rows


def count_rows(text: str) -> int:
    return max(0, len(_content_lines(text)) - 1)
