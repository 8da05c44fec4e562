"""
売上集計ロジック
"""

from .transactions import LineItem, PaymentMethod, TotalsMismatchError, TransactionRecord
from .business_day import business_day_key, business_day_window
from .period import Granularity, PeriodFilter, filter_transactions
from .recap import ProductRollup, RecapResult, SalesRecap, aggregate
from .excel_output import NothingToExportError, ReportExporter

__all__ = [
    'LineItem',
    'PaymentMethod',
    'TotalsMismatchError',
    'TransactionRecord',
    'business_day_key',
    'business_day_window',
    'Granularity',
    'PeriodFilter',
    'filter_transactions',
    'ProductRollup',
    'RecapResult',
    'SalesRecap',
    'aggregate',
    'NothingToExportError',
    'ReportExporter'
]
