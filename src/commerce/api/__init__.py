from commerce.api.routes import (
    cart_router,
    coupon_router,
    order_router,
    payment_router,
    pricing_option_router,
    renewal_router,
    subscription_router,
    user_router,
)

__all__ = [
    "cart_router",
    "coupon_router",
    "order_router",
    "payment_router",
    "pricing_option_router",
    "renewal_router",
    "subscription_router",
    "user_router",
]
