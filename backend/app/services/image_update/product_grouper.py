"""
上传行 → 按商品分组

规则：
    - new_image_url 为空的行直接跳过（槽位没填，不算错误）
    - URL 不合法（解析失败 / 非 http(s) / 没有 host）记一条错误，该行丢弃
    - 同一商品内 URL 重复的行丢弃（记日志、计入 duplicates，不算错误）
    - 商品顺序 = 首次出现顺序；组内保持文件行序
    - 位置按该商品合法 URL 行的序号计（重复行也占号），所以 a, a, b 里 b 的位置是 3
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List
from urllib.parse import urlparse

from app.services.image_update.csv_codec import ImageUpdateCSVRow


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupedRow:
    row: ImageUpdateCSVRow
    position: int       # 1-indexed


@dataclass
class GroupingResult:
    groups: Dict[str, List[GroupedRow]] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    duplicates: int = 0


def is_valid_image_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc) and bool(parsed.hostname)


def group_rows(rows: Iterable[ImageUpdateCSVRow]) -> GroupingResult:
    result = GroupingResult()
    seen_urls: Dict[str, set] = {}
    valid_counts: Dict[str, int] = {}

    for row in rows:
        url = row.new_image_url
        if not url:
            continue

        if not is_valid_image_url(url):
            result.errors.append(f'Skipping product {row.product_id}: Invalid image URL "{url}"')
            continue

        position = valid_counts.get(row.product_id, 0) + 1
        valid_counts[row.product_id] = position

        urls = seen_urls.setdefault(row.product_id, set())
        if url in urls:
            result.duplicates += 1
            logger.info("image_update.group.duplicate_url product_id=%s url=%s", row.product_id, url)
            continue
        urls.add(url)

        group = result.groups.setdefault(row.product_id, [])
        group.append(GroupedRow(row=row, position=position))

    logger.info(
        "image_update.group.done products=%s errors=%s duplicates=%s",
        len(result.groups), len(result.errors), result.duplicates,
    )
    return result
