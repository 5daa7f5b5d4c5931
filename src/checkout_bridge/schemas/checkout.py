"""
체크아웃 API 요청/응답 모델
"""
from typing import Optional

from pydantic import BaseModel, Field


class CheckoutSessionRequest(BaseModel):
    """체크아웃 세션 생성 요청"""
    plan: Optional[str] = Field(None, description="yearly 또는 monthly")
    product_id: Optional[str] = Field(None, description="Shopify 상품 ID (선택)")
    variant_id: Optional[str] = Field(None, description="Shopify 변형 ID (선택)")
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_term: Optional[str] = None
    utm_content: Optional[str] = None
    utm_id: Optional[str] = None


class CheckoutSessionResponse(BaseModel):
    """체크아웃 세션 생성 응답"""
    client_secret: Optional[str] = Field(None, description="Stripe 임베디드 결제용 client secret")
    return_url: str = Field(..., description="결제 완료 후 복귀 URL")


class ProductDetail(BaseModel):
    """상품 상세 응답"""
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    price: float = 0
    currency: str = "usd"
    metadata: dict = Field(default_factory=dict)
