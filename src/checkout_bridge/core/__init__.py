"""Core 패키지 초기화 (경량화)

모듈 간 순환 의존을 피하기 위해 최소한의 심볼만 노출합니다.
"""
from .config import Settings, settings
from .container import container
from .responses import (
    BusinessException,
    DraftCreateFailed,
    InvalidSignature,
    ServiceUnavailable,
    UnreadableBody,
    UpstreamFetchFailed,
    ValidationException,
    error_response,
    received_response,
)

__all__ = [
    'Settings',
    'settings',
    'container',
    'BusinessException',
    'DraftCreateFailed',
    'InvalidSignature',
    'ServiceUnavailable',
    'UnreadableBody',
    'UpstreamFetchFailed',
    'ValidationException',
    'error_response',
    'received_response',
]
