"""Models package - imports all models for the application"""
from ..extensions import db
from .mixins import TimestampMixin

# Import in dependency order for table creation
from .user import User
from .raw_material import RawMaterial, RawMaterialLot, StockLotUsage, StockTransaction
from .bottle import BottleStockTransaction, BottleType
from .catalog import Product, RecipeLine, SellableProduct, SellableProductVariation
from .production_batch import BatchStatus, FinishedGoods, ProductionBatch
from .order import Order, OrderItem

__all__ = [
    'db',
    'TimestampMixin',
    'User',
    'RawMaterial',
    'RawMaterialLot',
    'StockLotUsage',
    'StockTransaction',
    'BottleType',
    'BottleStockTransaction',
    'Product',
    'RecipeLine',
    'SellableProduct',
    'SellableProductVariation',
    'BatchStatus',
    'ProductionBatch',
    'FinishedGoods',
    'Order',
    'OrderItem',
]
