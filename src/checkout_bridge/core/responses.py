"""
공통 응답 헬퍼 및 예외 클래스
"""
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


# 커스텀 예외 클래스들
class BusinessException(Exception):
    """비즈니스 로직 예외"""
    def __init__(self, message: str, error_code: str = None, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class ValidationException(BusinessException):
    """입력 검증 예외"""
    def __init__(self, message: str = "입력 데이터가 유효하지 않습니다"):
        super().__init__(message, "VALIDATION_ERROR", 400)


class InvalidSignature(BusinessException):
    """웹훅 서명 검증 실패"""
    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message, "INVALID_SIGNATURE", 400)


class UnreadableBody(BusinessException):
    """요청 본문을 읽거나 해석할 수 없음"""
    def __init__(self, message: str = "Invalid body"):
        super().__init__(message, "UNREADABLE_BODY", 400)


class ServiceUnavailable(BusinessException):
    """배포 설정 누락으로 기능을 제공할 수 없음"""
    def __init__(self, message: str = "Service not configured"):
        super().__init__(message, "SERVICE_UNAVAILABLE", 503)


class UpstreamFetchFailed(BusinessException):
    """이벤트 확장을 위한 Stripe API 호출 실패"""
    def __init__(self, message: str = "Failed to retrieve upstream data"):
        super().__init__(message, "UPSTREAM_FETCH_FAILED", 500)


class DraftCreateFailed(BusinessException):
    """Shopify 드래프트 주문 생성 실패"""
    def __init__(self, message: str = "Failed to create draft order"):
        super().__init__(message, "DRAFT_CREATE_FAILED", 500)


# 응답 헬퍼 함수들
def received_response() -> Dict[str, Any]:
    """웹훅 수신 확인 응답"""
    return {"received": True}


def error_response(message: str = "오류가 발생했습니다", data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """오류 응답 생성"""
    body: Dict[str, Any] = {"error": message}
    if data:
        body.update(data)
    return body
