from .catalog import Product, PointOfSale, UnitType
from .packlists import Packlist, PacklistItem, PacklistStatus, PACKLIST_TRANSITIONS
from .orders import Order, OrderItem, OrderStatus, ORDER_TRANSITIONS
from .templates import PacklistTemplate, PacklistTemplateItem, OrderTemplate, OrderTemplateItem
from .stock import StockMovement

__all__ = [
    'Product', 'PointOfSale', 'UnitType',
    'Packlist', 'PacklistItem', 'PacklistStatus', 'PACKLIST_TRANSITIONS',
    'Order', 'OrderItem', 'OrderStatus', 'ORDER_TRANSITIONS',
    'PacklistTemplate', 'PacklistTemplateItem', 'OrderTemplate', 'OrderTemplateItem',
    'StockMovement',
]
