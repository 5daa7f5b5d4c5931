"""Loop 구독 동기화 어댑터

Stripe 구매/해지를 Loop에 기록만 하는 보조 채널이다. 실제 청구는 Stripe가 담당하므로
Loop 구독은 10년 주기의 "추적 전용" 레코드로 만든다. 모든 실패는 SyncResult로 반환되며
예외를 밖으로 던지지 않는다. 호출자는 결과를 로그로만 남기고 웹훅 응답에 반영하지 않는다.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple

import httpx

from checkout_bridge.core.config import Settings
from checkout_bridge.schemas.orders import Plan, SyncResult

logger = logging.getLogger(__name__)

TRACKING_INTERVAL = "YEAR"
TRACKING_INTERVAL_COUNT = 10
TRACKING_HORIZON = timedelta(days=365 * TRACKING_INTERVAL_COUNT)

SubscriptionListShape = Literal[
    "subscriptions",
    "subscription_ids",
    "nested_data",
    "single_object",
    "empty",
]


@dataclass(frozen=True)
class SubscriptionIdsPayload:
    """고객 조회 응답에서 추출한 구독 ID 목록과 응답 형태"""
    shape: SubscriptionListShape
    ids: Tuple[str, ...] = field(default_factory=tuple)


def _item_id(item: Any) -> Optional[str]:
    if isinstance(item, dict):
        item = item.get("id")
    if item is None or isinstance(item, bool):
        return None
    text = str(item).strip()
    return text or None


def _collect_ids(raw: Any) -> Tuple[str, ...]:
    items = raw if isinstance(raw, list) else [raw]
    ids: List[str] = []
    for item in items:
        item_id = _item_id(item)
        if item_id and item_id not in ids:
            ids.append(item_id)
    return tuple(ids)


def _subscription_field(payload: Dict[str, Any]) -> Tuple[Optional[SubscriptionListShape], Any]:
    if payload.get("subscriptions") is not None:
        return "subscriptions", payload["subscriptions"]
    if payload.get("subscription_ids") is not None:
        return "subscription_ids", payload["subscription_ids"]
    data = payload.get("data")
    if isinstance(data, dict) and data.get("subscriptions") is not None:
        return "nested_data", data["subscriptions"]
    return None, None


def normalize_subscription_ids(payload: Any) -> SubscriptionIdsPayload:
    """Loop 고객 조회 응답을 알려진 형태 중 하나로 분류하고 구독 ID를 추출

    구독 ID는 아래 필드에서만 읽는다. 고객 레코드 자체의 id는 구독 ID가 아니다.

    - subscriptions: ``{"subscriptions": [{"id": 1}, 2]}``
    - subscription_ids: ``{"subscription_ids": [1, 2]}``
    - nested_data: ``{"data": {"subscriptions": [...]}}``
    - single_object: 위 필드 중 하나가 목록 대신 단일 값 (``{"subscriptions": {"id": 1}}``)
    - empty: 그 외
    """

    if not isinstance(payload, dict):
        return SubscriptionIdsPayload("empty")

    shape, raw = _subscription_field(payload)
    if shape is None:
        return SubscriptionIdsPayload("empty")
    if not isinstance(raw, list):
        return SubscriptionIdsPayload("single_object", _collect_ids(raw))
    return SubscriptionIdsPayload(shape, _collect_ids(raw))


def _numeric_or_raw(value: str) -> Any:
    text = str(value).strip()
    if text.startswith("gid://"):
        text = text.rsplit("/", 1)[-1]
    return int(text) if text.isdigit() else text


class LoopSyncAdapter:
    """Loop Admin API 동기화 어댑터 (기능 플래그 LOOP_SYNC_ENABLED)"""

    def __init__(
        self,
        settings: Settings,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.settings = settings
        self.base_url = (settings.LOOP_API_BASE_URL or "").rstrip("/")
        self.timeout = settings.HTTP_TIMEOUT_SECONDS
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def enabled(self) -> bool:
        return bool(self.settings.LOOP_SYNC_ENABLED)

    def _headers(self) -> Optional[Dict[str, str]]:
        token = (self.settings.LOOP_API_TOKEN or "").strip()
        if not token:
            return None
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-loop-token": token,
        }

    def _variant_for(self, plan: Plan) -> Optional[str]:
        if plan is Plan.MONTHLY:
            return self.settings.LOOP_VARIANT_MONTHLY or None
        return self.settings.LOOP_VARIANT_YEARLY or None

    def build_subscription_body(
        self,
        plan: Plan,
        customer_id: str,
        origin_order_id: Optional[str],
        variant_id: str,
        selling_plan_id: str,
        currency_code: str,
    ) -> Dict[str, Any]:
        """추적 전용 구독 생성 요청 본문 (다음 청구일은 약 10년 뒤)"""

        next_billing = self._clock() + TRACKING_HORIZON
        policy = {"interval": TRACKING_INTERVAL, "intervalCount": TRACKING_INTERVAL_COUNT}
        body: Dict[str, Any] = {
            "customerShopifyId": _numeric_or_raw(customer_id),
            "nextBillingDateEpoch": int(next_billing.timestamp()),
            "currencyCode": currency_code,
            "billingPolicy": dict(policy),
            "deliveryPolicy": dict(policy),
            "lines": [
                {
                    "variantShopifyId": _numeric_or_raw(variant_id),
                    "sellingPlanShopifyId": _numeric_or_raw(selling_plan_id),
                    "quantity": 1,
                }
            ],
            "customAttributes": [{"key": "plan", "value": plan.value}],
        }
        if origin_order_id:
            body["originOrderShopifyId"] = _numeric_or_raw(origin_order_id)
        return body

    async def create_subscription(
        self,
        email: Optional[str],
        plan: Plan,
        customer_id: Optional[str],
        origin_order_id: Optional[str],
        currency_code: str = "AUD",
    ) -> SyncResult:
        """Loop 구독 생성. 플래그가 꺼져 있으면 호출 없이 성공 반환"""

        if not self.enabled:
            return SyncResult(ok=True, skipped=True)
        if not email or not str(email).strip():
            logger.warning("[LOOP] createSubscription skipped, no email")
            return SyncResult(ok=False, error="No email")
        if not customer_id or not str(customer_id).strip():
            logger.warning("[LOOP] createSubscription skipped, no Shopify customer id")
            return SyncResult(ok=False, error="No customer id")
        headers = self._headers()
        if headers is None:
            logger.warning("[LOOP] LOOP_API_TOKEN not set, skipping create")
            return SyncResult(ok=False, error="No token")
        selling_plan_id = self.settings.LOOP_SELLING_PLAN_ID
        if not selling_plan_id:
            logger.warning("[LOOP] LOOP_SELLING_PLAN_ID not set, skipping create")
            return SyncResult(ok=False, error="No selling plan ID")
        variant_id = self._variant_for(plan)
        if not variant_id:
            logger.warning("[LOOP] no Loop variant configured for plan=%s, skipping create", plan.value)
            return SyncResult(ok=False, error="No variant ID")

        body = self.build_subscription_body(plan, customer_id, origin_order_id, variant_id, selling_plan_id, currency_code)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request("POST", f"{self.base_url}/subscription", headers=headers, json=body)
        except httpx.HTTPError as exc:
            logger.error("[LOOP] createSubscription error: %s", exc)
            return SyncResult(ok=False, error=str(exc))

        if response.status_code >= 400:
            logger.error("[LOOP] createSubscription failed: status=%s body=%s", response.status_code, response.text)
            return SyncResult(ok=False, error=response.text or f"HTTP {response.status_code}")

        logger.info("[LOOP] subscription created: customer=%s order=%s plan=%s", customer_id, origin_order_id, plan.value)
        return SyncResult(ok=True)

    async def cancel_subscription(self, email: Optional[str]) -> SyncResult:
        """이메일로 고객의 Loop 구독을 모두 해지. 일부 실패는 개별 로그 후 계속 진행"""

        if not self.enabled:
            return SyncResult(ok=True, skipped=True)
        if not email or not str(email).strip():
            logger.warning("[LOOP] cancelSubscription skipped, no email")
            return SyncResult(ok=False, error="No email")
        headers = self._headers()
        if headers is None:
            logger.warning("[LOOP] LOOP_API_TOKEN not set, skipping cancel")
            return SyncResult(ok=False, error="No token")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                lookup = await client.request(
                    "GET",
                    f"{self.base_url}/customers",
                    headers=headers,
                    params={"email": str(email).strip()},
                )
                if lookup.status_code >= 400:
                    logger.error(
                        "[LOOP] cancelSubscription: customer lookup failed status=%s body=%s",
                        lookup.status_code,
                        lookup.text,
                    )
                    return SyncResult(ok=False, error="Customer lookup failed")

                try:
                    normalized = normalize_subscription_ids(lookup.json())
                except ValueError:
                    logger.error("[LOOP] cancelSubscription: customer lookup returned invalid JSON")
                    return SyncResult(ok=False, error="Customer lookup failed")

                if not normalized.ids:
                    logger.info("[LOOP] no subscriptions to cancel (shape=%s)", normalized.shape)
                    return SyncResult(ok=True)

                cancelled: List[str] = []
                failed: List[str] = []
                for subscription_id in normalized.ids:
                    if await self._cancel_one(client, headers, subscription_id):
                        cancelled.append(subscription_id)
                    else:
                        failed.append(subscription_id)
        except httpx.HTTPError as exc:
            logger.error("[LOOP] cancelSubscription error: %s", exc)
            return SyncResult(ok=False, error=str(exc))

        logger.info("[LOOP] cancel finished: cancelled=%s failed=%s", cancelled, failed)
        return SyncResult(ok=True, cancelled_ids=cancelled, failed_ids=failed)

    async def _cancel_one(self, client: httpx.AsyncClient, headers: Dict[str, str], subscription_id: str) -> bool:
        try:
            response = await client.request(
                "POST",
                f"{self.base_url}/subscriptions/{subscription_id}/cancel",
                headers=headers,
                json={},
            )
        except httpx.HTTPError as exc:
            logger.error("[LOOP] cancelSubscription: cancel error subscription=%s error=%s", subscription_id, exc)
            return False

        if response.status_code >= 400:
            logger.error(
                "[LOOP] cancelSubscription: cancel failed subscription=%s status=%s body=%s",
                subscription_id,
                response.status_code,
                response.text,
            )
            return False
        return True
