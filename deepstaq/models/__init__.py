"""Models package - exports all SQLAlchemy models."""
from deepstaq.models.godown import Godown
from deepstaq.models.unit_type import UnitType
from deepstaq.models.company import Company
from deepstaq.models.product import Product
from deepstaq.models.stock_movement import StockMovement, StockMovementType
from deepstaq.models.alert_setting import AlertSetting, UnitAlertSetting

__all__ = [
    'Godown', 'UnitType', 'Company', 'Product',
    'StockMovement', 'StockMovementType',
    'AlertSetting', 'UnitAlertSetting',
]
