"""Stripe API 클라이언트 (stripe SDK 비동기 메서드 래퍼)"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import stripe


def _expand(expand: Optional[Iterable[str]]) -> Dict[str, Any]:
    fields = list(expand or [])
    return {"expand": fields} if fields else {}


class StripeAPIClient:
    """웹훅 처리와 체크아웃 API가 사용하는 Stripe 호출 모음

    재시도, 멱등 키, API 버전 고정은 ``stripe.StripeClient``가 담당한다.
    실패는 ``stripe.StripeError``로 전파된다.
    """

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: float = 15.0,
        *,
        api_version: Optional[str] = None,
        max_retries: int = 2,
        client: Optional[stripe.StripeClient] = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ValueError("Stripe 시크릿 키가 설정되지 않았습니다.")

        self._client = client or stripe.StripeClient(
            api_key,
            stripe_version=api_version,
            base_addresses={"api": base_url.rstrip("/")} if base_url else {},
            max_network_retries=max(0, int(max_retries)),
            http_client=stripe.HTTPXClient(timeout=timeout),
        )

    async def retrieve_checkout_session(
        self,
        session_id: str,
        expand: Optional[Iterable[str]] = None,
    ) -> Dict[str, Any]:
        """Checkout 세션 조회"""

        return await self._client.checkout.sessions.retrieve_async(session_id, params=_expand(expand))

    async def retrieve_invoice(
        self,
        invoice_id: str,
        expand: Optional[Iterable[str]] = None,
    ) -> Dict[str, Any]:
        """인보이스 조회"""

        return await self._client.invoices.retrieve_async(invoice_id, params=_expand(expand))

    async def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        return await self._client.subscriptions.retrieve_async(subscription_id)

    async def retrieve_customer(self, customer_id: str) -> Dict[str, Any]:
        """고객 조회 (삭제된 고객은 deleted=true로 반환됨)"""

        return await self._client.customers.retrieve_async(customer_id)

    async def retrieve_price(self, price_id: str) -> Dict[str, Any]:
        return await self._client.prices.retrieve_async(price_id)

    async def retrieve_product(self, product_id: str) -> Dict[str, Any]:
        return await self._client.products.retrieve_async(product_id)

    async def list_prices(self, product_id: str, *, active: bool = True, limit: int = 1) -> List[Dict[str, Any]]:
        """상품의 가격 목록 조회"""

        prices = await self._client.prices.list_async(
            params={"product": product_id, "active": active, "limit": limit}
        )
        return list(prices.data or [])

    async def create_checkout_session(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Checkout 세션 생성"""

        return await self._client.checkout.sessions.create_async(params=params)

    async def create_billing_portal_session(self, customer_id: str, return_url: str) -> Dict[str, Any]:
        """고객 포털 세션 생성"""

        return await self._client.billing_portal.sessions.create_async(
            params={"customer": customer_id, "return_url": return_url}
        )
