"""
ビジネスロジックサービス
"""

from .transaction_store import StoredDataError, TransactionStore
from .product_catalog import Product, ProductCatalog, parse_price
from .checkout import (
    CartItem, EmptyCartError, UnknownProductError, build_cart, cart_total, checkout
)
from .expenses import Expense, ExpenseLog

__all__ = [
    'StoredDataError',
    'TransactionStore',
    'Product',
    'ProductCatalog',
    'parse_price',
    'CartItem',
    'EmptyCartError',
    'UnknownProductError',
    'build_cart',
    'cart_total',
    'checkout',
    'Expense',
    'ExpenseLog'
]
