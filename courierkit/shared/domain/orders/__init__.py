from courierkit.shared.domain.orders.service import OrderService

__all__ = ["OrderService"]
