# Import all models here so SQLAlchemy registers them with Base.metadata
from storefront.models.admin_user import AdminUser
from storefront.models.customer import CustomerProfile, Subscriber
from storefront.models.event import Event, EventProduct
from storefront.models.order import Order, OrderItem, OrderStatus
from storefront.models.product import Product

__all__ = [
    "AdminUser",
    "CustomerProfile",
    "Event",
    "EventProduct",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Product",
    "Subscriber",
]
