"""
애플리케이션 설정 관리
"""
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import validator
from pydantic_settings import BaseSettings


_FILE_PATH = Path(__file__).resolve()

_TRUTHY_FLAGS = {"true", "1", "yes", "on"}


def _collect_env_files(file_path: Path) -> tuple[Path, ...]:
    """환경 파일 후보를 가까운 디렉터리부터 수집"""

    collected: list[Path] = []
    seen: set[Path] = set()

    for directory in file_path.parents:
        for name in (".env", ".env.local"):
            candidate = directory / name
            if candidate.exists() and candidate not in seen:
                collected.append(candidate)
                seen.add(candidate)

    return tuple(collected)


_ENV_FILES = _collect_env_files(_FILE_PATH)


def _load_dotenv_files() -> None:
    """프로젝트 전체에서 활용할 .env 파일들을 순차적으로 로드"""

    for dotenv_path in _ENV_FILES:
        load_dotenv(dotenv_path, override=False)


_load_dotenv_files()


class Settings(BaseSettings):
    """애플리케이션 설정

    모든 값은 선택 항목이다. 설정이 빠진 기능은 팩토리에서 비활성화되고
    해당 엔드포인트가 503 또는 건너뜀으로 응답한다.
    """

    # 서버 설정
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False

    # 로깅 설정
    LOG_LEVEL: str = "INFO"

    # 외부 HTTP 호출 정책
    HTTP_TIMEOUT_SECONDS: float = 15.0
    HTTP_MAX_RETRIES: int = 2

    # Stripe 설정
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_PUBLISHABLE_KEY: Optional[str] = None
    STRIPE_API_BASE_URL: str = "https://api.stripe.com"
    STRIPE_API_VERSION: str = "2025-09-30.clover"
    STRIPE_PRICE_YEARLY: Optional[str] = None
    STRIPE_PRICE_MONTHLY: Optional[str] = None
    STRIPE_TRIAL_PERIOD_DAYS: int = 7
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300
    GA_MEASUREMENT_ID: Optional[str] = None

    # Shopify 설정
    SHOPIFY_SHOP_DOMAIN: Optional[str] = None
    SHOPIFY_ACCESS_TOKEN: Optional[str] = None
    SHOPIFY_API_VERSION: str = "2024-04"
    SHOPIFY_VARIANT_YEARLY: Optional[str] = None
    SHOPIFY_VARIANT_MONTHLY: Optional[str] = None
    SHOPIFY_ORDER_TAGS: Optional[str] = None
    SHOPIFY_SOURCE_NAME: Optional[str] = None
    DEFAULT_CURRENCY: str = "AUD"

    # Loop 구독 동기화 설정
    LOOP_SYNC_ENABLED: bool = False
    LOOP_API_TOKEN: Optional[str] = None
    LOOP_API_BASE_URL: str = "https://api.loopsubscriptions.com/admin/2023-10"
    LOOP_SELLING_PLAN_ID: Optional[str] = None
    LOOP_VARIANT_YEARLY: Optional[str] = None
    LOOP_VARIANT_MONTHLY: Optional[str] = None

    @validator("LOOP_SYNC_ENABLED", pre=True)
    def parse_loop_flag(cls, v):
        if isinstance(v, bool):
            return v
        if v is None:
            return False
        return str(v).strip().lower() in _TRUTHY_FLAGS

    @validator("SHOPIFY_SHOP_DOMAIN")
    def normalize_shop_domain(cls, v):
        if not v:
            return None
        domain = v.strip()
        for prefix in ("https://", "http://"):
            if domain.lower().startswith(prefix):
                domain = domain[len(prefix):]
        return domain.rstrip("/") or None

    @validator("DEFAULT_CURRENCY")
    def normalize_currency(cls, v):
        return (v or "AUD").strip().upper()

    @property
    def stripe_configured(self) -> bool:
        return bool(self.STRIPE_SECRET_KEY)

    @property
    def webhook_configured(self) -> bool:
        return bool(self.STRIPE_SECRET_KEY and self.STRIPE_WEBHOOK_SECRET)

    @property
    def shopify_configured(self) -> bool:
        return bool(self.SHOPIFY_SHOP_DOMAIN and self.SHOPIFY_ACCESS_TOKEN)

    class Config:
        env_file = tuple(str(path) for path in _ENV_FILES) if _ENV_FILES else None
        case_sensitive = True
        extra = "allow"  # 추가 환경변수 허용


# 전역 설정 인스턴스 (ASGI 진입점 전용, 컴포넌트에는 팩토리가 명시적으로 전달)
settings = Settings()
