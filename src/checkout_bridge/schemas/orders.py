"""
결제 이벤트에서 Shopify 주문으로 이어지는 값 객체 정의
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union


class Plan(str, Enum):
    """구독 플랜"""
    YEARLY = "yearly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class ChargeOutcome:
    """결제 금액에서 파생되는 주문 정보 (저장하지 않음)"""
    plan: Plan
    amount_formatted: str
    currency_code: str

    @property
    def is_trial(self) -> bool:
        return self.amount_formatted == "0.00"


@dataclass(frozen=True)
class CatalogLine:
    """카탈로그 변형을 참조하는 라인 (Stripe 결제 금액으로 가격 덮어쓰기)"""
    variant_id: str
    price_override: str
    quantity: int = 1


@dataclass(frozen=True)
class CustomLine:
    """제목과 가격만 가진 자유 입력 라인"""
    title: str
    price: str
    quantity: int = 1


LineItem = Union[CatalogLine, CustomLine]


@dataclass(frozen=True)
class NoteAttribute:
    key: str
    value: str


@dataclass
class OrderDraftPayload:
    """Shopify 드래프트 주문 생성 요청"""
    line_items: List[LineItem]
    note: str
    note_attributes: List[NoteAttribute] = field(default_factory=list)
    email: Optional[str] = None
    tags: Optional[str] = None
    source_name: Optional[str] = None

    def attribute(self, key: str) -> Optional[str]:
        for attr in self.note_attributes:
            if attr.key == key:
                return attr.value
        return None


@dataclass
class OrderResult:
    """드래프트 생성/완료 결과

    ok는 드래프트 생성 단계 기준이다. 완료 단계가 실패해도 드래프트는 남아 있으므로
    ok=True, completed=False로 보고하고 complete_error에 사유를 남긴다.
    """
    ok: bool
    draft_order_id: Optional[str] = None
    order_id: Optional[str] = None
    customer_id: Optional[str] = None
    completed: bool = False
    error: Optional[str] = None
    complete_error: Optional[str] = None


@dataclass
class SyncResult:
    """구독 동기화 결과. 호출자는 실패를 로그로만 남기고 전파하지 않는다."""
    ok: bool
    error: Optional[str] = None
    skipped: bool = False
    cancelled_ids: List[str] = field(default_factory=list)
    failed_ids: List[str] = field(default_factory=list)
