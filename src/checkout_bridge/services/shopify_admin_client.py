"""Shopify Admin API 클라이언트 (GraphQL + REST 조회)"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx


logger = logging.getLogger(__name__)


class ShopifyAPIError(RuntimeError):
    """Shopify Admin API 오류"""

    def __init__(
        self,
        message: str,
        status_code: int,
        payload: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class ShopifyAdminClient:
    """Shopify Admin API 비동기 클라이언트

    GraphQL 뮤테이션은 한 번만 전송한다 (드래프트 생성에 멱등 키 없음). REST 조회만 재시도한다.
    """

    RETRYABLE_STATUS = {408, 429, 500, 502, 503, 504}

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = "2024-04",
        timeout: float = 15.0,
        *,
        max_retries: int = 2,
        backoff_factor: float = 0.5,
    ) -> None:
        if not shop_domain or not shop_domain.strip():
            raise ValueError("Shopify 상점 도메인이 설정되지 않았습니다.")
        if not access_token or not access_token.strip():
            raise ValueError("Shopify 액세스 토큰이 설정되지 않았습니다.")

        self.shop_domain = shop_domain.strip()
        self.access_token = access_token
        self.api_version = api_version
        self.timeout = timeout
        self.max_retries = max(0, int(max_retries))
        self.backoff_factor = max(0.0, float(backoff_factor))

    @property
    def admin_base_url(self) -> str:
        return f"https://{self.shop_domain}/admin/api/{self.api_version}"

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Shopify-Access-Token": self.access_token,
        }

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GraphQL 요청을 한 번 보내고 data 객체를 반환

        HTTP 오류, 네트워크 오류, 최상위 errors 필드는 모두 ShopifyAPIError로 변환한다.
        userErrors 판정은 호출자 몫이다.
        """

        url = f"{self.admin_base_url}/graphql.json"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    "POST",
                    url,
                    headers=self._headers(),
                    json={"query": query, "variables": variables or {}},
                )
        except httpx.RequestError as exc:
            logger.error("[SHOPIFY] GraphQL network error: %s", exc)
            raise ShopifyAPIError(f"Shopify network error: {exc}", status_code=0) from exc

        if response.status_code >= 400:
            logger.error("[SHOPIFY] GraphQL request failed: status=%s body=%s", response.status_code, response.text)
            raise ShopifyAPIError(response.text or f"HTTP {response.status_code}", response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise ShopifyAPIError("Shopify 응답을 파싱하지 못했습니다", response.status_code) from exc

        errors = payload.get("errors") if isinstance(payload, dict) else None
        if errors:
            message = _join_error_messages(errors)
            logger.error("[SHOPIFY] GraphQL errors: %s", message)
            raise ShopifyAPIError(message, response.status_code, payload)

        data = payload.get("data") if isinstance(payload, dict) else None
        return data if isinstance(data, dict) else {}

    async def rest_get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """REST GET 요청 (재시도 포함)"""

        url = f"{self.admin_base_url}{path}"
        for attempt in range(self.max_retries + 1):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request("GET", url, headers=self._headers(), params=params)
            except httpx.RequestError as exc:
                logger.warning("[SHOPIFY] REST network error: GET %s attempt=%s error=%s", path, attempt + 1, exc)
                if attempt == self.max_retries:
                    raise ShopifyAPIError(f"Shopify network error: {exc}", status_code=0) from exc
                await self._sleep_backoff(attempt)
                continue

            if response.status_code >= 400:
                if response.status_code in self.RETRYABLE_STATUS and attempt < self.max_retries:
                    logger.warning(
                        "[SHOPIFY] REST retry: GET %s status=%s attempt=%s",
                        path,
                        response.status_code,
                        attempt + 1,
                    )
                    await self._sleep_backoff(attempt)
                    continue
                raise ShopifyAPIError(response.text or f"HTTP {response.status_code}", response.status_code)

            try:
                payload = response.json()
            except ValueError as exc:
                raise ShopifyAPIError("Shopify 응답을 파싱하지 못했습니다", response.status_code) from exc
            return payload if isinstance(payload, dict) else {}

        raise ShopifyAPIError("Shopify REST 요청이 반복적으로 실패했습니다.", status_code=0)

    async def get_customer_id_from_order(self, order_id: Optional[str]) -> Optional[str]:
        """주문에 연결된 고객 ID 조회. 실패하면 None"""

        if not order_id or not str(order_id).strip():
            return None
        try:
            data = await self.rest_get(f"/orders/{str(order_id).strip()}.json")
        except ShopifyAPIError as exc:
            logger.warning("[SHOPIFY] order lookup failed: order=%s status=%s", order_id, exc.status_code)
            return None

        order = data.get("order")
        if not isinstance(order, dict):
            return None
        customer = order.get("customer") if isinstance(order.get("customer"), dict) else {}
        customer_id = order.get("customer_id") or customer.get("id")
        return str(customer_id) if customer_id is not None else None

    async def get_customer_id_by_email(self, email: Optional[str]) -> Optional[str]:
        """이메일로 고객 ID 검색. 실패하면 None"""

        if not email or not email.strip():
            return None
        try:
            data = await self.rest_get("/customers/search.json", params={"query": f"email:{email.strip()}"})
        except ShopifyAPIError as exc:
            logger.warning("[SHOPIFY] customer search failed: status=%s", exc.status_code)
            return None

        customers = data.get("customers")
        if not isinstance(customers, list) or not customers:
            return None
        customer_id = customers[0].get("id") if isinstance(customers[0], dict) else None
        return str(customer_id) if customer_id is not None else None

    async def _sleep_backoff(self, attempt: int) -> None:
        delay = self.backoff_factor * (2**attempt)
        if delay > 0:
            await asyncio.sleep(delay)


def _join_error_messages(errors: Any) -> str:
    if isinstance(errors, list):
        messages = [
            str(err.get("message")) if isinstance(err, dict) and err.get("message") else str(err)
            for err in errors
        ]
        return "; ".join(messages) or "Unknown Shopify error"
    if isinstance(errors, dict):
        return "; ".join(f"{key}: {value}" for key, value in errors.items())
    return str(errors)
