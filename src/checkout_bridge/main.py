"""
Stripe → Shopify 체크아웃 브리지 애플리케이션
"""
from typing import Optional
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from checkout_bridge import __version__
from checkout_bridge.core.config import Settings, settings
from checkout_bridge.core.factory import ServiceFactory
from checkout_bridge.core.middleware import setup_exception_handlers
from checkout_bridge.routers import checkout_router, public_router, stripe_webhook_router

logger = logging.getLogger(__name__)


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """설정을 주입받아 애플리케이션을 구성한다 (테스트는 별도 Settings 전달)"""

    app_settings = app_settings or settings

    # 로깅 설정
    logging.basicConfig(
        level=getattr(logging, app_settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    ServiceFactory.configure_dependencies(app_settings)

    app = FastAPI(
        title="Stripe Shopify Checkout Bridge",
        description="Stripe 결제 이벤트를 Shopify 주문과 Loop 구독으로 반영하는 서버",
        version=__version__,
        debug=app_settings.DEBUG,
    )

    setup_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(public_router.router)
    app.include_router(checkout_router.router)
    app.include_router(stripe_webhook_router.router)

    logger.info("애플리케이션 초기화 완료 (version=%s)", __version__)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )
