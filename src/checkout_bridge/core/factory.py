"""
서비스 팩토리 - 의존성 주입 설정
"""
from typing import Optional, Type, TypeVar
import logging

from checkout_bridge.core.config import Settings
from checkout_bridge.core.container import container
from checkout_bridge.services.line_item_mapper import LineItemMapper
from checkout_bridge.services.loop_sync_adapter import LoopSyncAdapter
from checkout_bridge.services.order_writer import OrderWriter
from checkout_bridge.services.shopify_admin_client import ShopifyAdminClient
from checkout_bridge.services.signature_verifier import SignatureVerifier
from checkout_bridge.services.stripe_api_client import StripeAPIClient
from checkout_bridge.services.webhook_processor import WebhookProcessor

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ServiceFactory:
    """서비스 의존성 등록 및 초기화

    설정 객체를 한 번 받아 각 컴포넌트 생성자에 명시적으로 전달한다.
    설정이 빠진 클라이언트는 등록하지 않으며, get_* 접근자는 None을 반환한다.
    """

    @staticmethod
    def configure_dependencies(settings: Settings) -> None:
        """의존성 주입 컨테이너 설정"""
        container.clear()
        container.register_singleton(Settings, settings)

        stripe_client = None
        if settings.stripe_configured:
            stripe_client = StripeAPIClient(
                api_key=settings.STRIPE_SECRET_KEY,
                base_url=settings.STRIPE_API_BASE_URL,
                timeout=settings.HTTP_TIMEOUT_SECONDS,
                api_version=settings.STRIPE_API_VERSION,
                max_retries=settings.HTTP_MAX_RETRIES,
            )
            container.register_singleton(StripeAPIClient, stripe_client)
        else:
            logger.warning("[STRIPE] STRIPE_SECRET_KEY가 설정되지 않아 Stripe 클라이언트를 초기화하지 않습니다.")

        if settings.STRIPE_WEBHOOK_SECRET:
            container.register_singleton(
                SignatureVerifier,
                SignatureVerifier(settings.STRIPE_WEBHOOK_SECRET, settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS),
            )
        else:
            logger.warning("[WEBHOOK] STRIPE_WEBHOOK_SECRET가 설정되지 않아 웹훅 서명 검증을 사용할 수 없습니다.")

        shopify_client = None
        order_writer = None
        if settings.shopify_configured:
            shopify_client = ShopifyAdminClient(
                shop_domain=settings.SHOPIFY_SHOP_DOMAIN,
                access_token=settings.SHOPIFY_ACCESS_TOKEN,
                api_version=settings.SHOPIFY_API_VERSION,
                timeout=settings.HTTP_TIMEOUT_SECONDS,
                max_retries=settings.HTTP_MAX_RETRIES,
            )
            order_writer = OrderWriter(shopify_client)
            container.register_singleton(ShopifyAdminClient, shopify_client)
            container.register_singleton(OrderWriter, order_writer)
        else:
            logger.warning("[SHOPIFY] 상점 도메인/토큰이 설정되지 않아 주문 생성을 건너뜁니다.")

        mapper = LineItemMapper(settings)
        loop_adapter = LoopSyncAdapter(settings)
        container.register_singleton(LineItemMapper, mapper)
        container.register_singleton(LoopSyncAdapter, loop_adapter)

        if stripe_client is not None:
            container.register_singleton(
                WebhookProcessor,
                WebhookProcessor(
                    settings=settings,
                    stripe_client=stripe_client,
                    line_item_mapper=mapper,
                    order_writer=order_writer,
                    shopify_client=shopify_client,
                    loop_adapter=loop_adapter,
                ),
            )

        logger.info(
            "서비스 구성 완료: stripe=%s webhook=%s shopify=%s loop=%s",
            settings.stripe_configured,
            settings.webhook_configured,
            settings.shopify_configured,
            loop_adapter.enabled,
        )

    @staticmethod
    def _optional(interface: Type[T]) -> Optional[T]:
        return container.get(interface) if container.has(interface) else None

    @staticmethod
    def get_settings() -> Settings:
        return container.get(Settings)

    @staticmethod
    def get_stripe_client() -> Optional[StripeAPIClient]:
        return ServiceFactory._optional(StripeAPIClient)

    @staticmethod
    def get_signature_verifier() -> Optional[SignatureVerifier]:
        return ServiceFactory._optional(SignatureVerifier)

    @staticmethod
    def get_webhook_processor() -> Optional[WebhookProcessor]:
        return ServiceFactory._optional(WebhookProcessor)
