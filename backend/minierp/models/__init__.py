from .auth import User, ROLES, PRIVILEGED_ROLES
from .inventory import Product, PRODUCT_STATUSES, compute_stock_status
from .orders import Order, OrderItem, ORDER_STATUSES, PAYMENT_STATUSES, FINAL_ORDER_STATUSES

__all__ = [
    'User', 'ROLES', 'PRIVILEGED_ROLES',
    'Product', 'PRODUCT_STATUSES', 'compute_stock_status',
    'Order', 'OrderItem', 'ORDER_STATUSES', 'PAYMENT_STATUSES', 'FINAL_ORDER_STATUSES',
]
