"""공용 테스트 더블 및 픽스처"""
from typing import Any, Dict, List, Optional

import httpx
import pytest

from checkout_bridge.core.config import Settings


class DummyAsyncClient:
    """httpx.AsyncClient 대체용 간단한 더블 (요청을 기록하고 준비된 응답을 순서대로 반환)"""

    def __init__(self, responses: List[Any], calls: List[Dict[str, Any]]) -> None:
        self._responses = responses
        self.calls = calls

    async def __aenter__(self) -> "DummyAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        self.calls.append({"method": method, "url": url, **kwargs})
        try:
            response = self._responses.pop(0)
        except IndexError as exc:  # pragma: no cover - 테스트 보조 코드
            raise AssertionError("예상보다 많은 요청이 발생했습니다") from exc
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def patch_async_client(monkeypatch):
    """모듈의 httpx.AsyncClient를 더블로 교체하고 요청 기록 목록을 반환"""

    def _patch(module: str, responses: List[Any]) -> List[Dict[str, Any]]:
        queue = list(responses)
        calls: List[Dict[str, Any]] = []

        def _factory(*args, **kwargs):
            return DummyAsyncClient(queue, calls)

        monkeypatch.setattr(f"checkout_bridge.services.{module}.httpx.AsyncClient", _factory)
        return calls

    return _patch


@pytest.fixture
def make_settings():
    """.env 파일을 읽지 않는 Settings 생성기"""

    def _make(**overrides: Optional[Any]) -> Settings:
        return Settings(_env_file=None, **overrides)

    return _make
