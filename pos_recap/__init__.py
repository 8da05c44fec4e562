"""
POS 売上集計システム
"""

__version__ = "1.0.0"
