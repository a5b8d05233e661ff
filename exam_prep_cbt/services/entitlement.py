"""
services/entitlement.py

콘텐츠 열람 권한 판정.
  수강 등록자 → 전부 열람
  무료 항목   → 열람
  목록의 첫 항목 → 미리보기로 열람 (영상/노트/모의고사/라이브 수업 목록 공통 정책)
"""

from typing import Iterable, List, NamedTuple

from exam_prep_cbt.models.content_model import ContentItem, EntitlementContext, ItemFlags


class ListingRow(NamedTuple):
    item: ContentItem
    position_index: int
    accessible: bool


def can_access(context: EntitlementContext) -> bool:
    return (
        context.viewer_enrolled
        or context.item.is_free
        or context.item.position_index == 0
    )


def order_listing(items: Iterable[ContentItem]) -> List[ContentItem]:
    """order 기준 안정 정렬 (같은 order면 백엔드가 준 순서 유지)."""
    return sorted(items, key=lambda item: item.order)


def annotate_listing(items: Iterable[ContentItem], viewer_enrolled: bool) -> List[ListingRow]:
    """
    목록을 정렬한 뒤 현재 순위로 position_index를 다시 매기고 열람 가능 여부를 붙인다.
    position_index는 저장값이 아니므로 정렬이 바뀔 때마다 이 함수를 다시 호출해야 한다.
    """
    rows = []
    for position, item in enumerate(order_listing(items)):
        context = EntitlementContext(
            viewer_enrolled=viewer_enrolled,
            item=ItemFlags(is_free=item.is_free, position_index=position),
        )
        rows.append(ListingRow(item, position, can_access(context)))
    return rows
