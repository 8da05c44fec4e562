"""
経費記録サービス
当日の営業日（04:00〜翌04:00）の経費を記録・一覧する
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence
import logging

from ..aggregator.business_day import DEFAULT_DAY_START_OFFSET, business_day_window
from .transaction_store import TransactionStore

logger = logging.getLogger(__name__)


@dataclass
class Expense:
    """経費レコード"""
    id: str
    description: str
    amount: float
    timestamp: Optional[datetime]

    def to_dict(self):
        """辞書形式に変換"""
        return {
            'id': self.id,
            'description': self.description,
            'amount': self.amount,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None
        }


def _validate(description, amount):
    """
    入力チェック

    Raises:
        ValueError: 説明が空、または金額が正でない場合
    """
    description = (description or '').strip()
    if not description:
        raise ValueError("Harap isi semua kolom!")
    try:
        amount = float(amount) if isinstance(amount, str) else amount
    except ValueError:
        raise ValueError(f"金額が不正です: {amount!r}")
    if amount is None or isinstance(amount, bool) or amount <= 0:
        raise ValueError(f"金額は正の数である必要があります: {amount!r}")
    if isinstance(amount, float) and amount.is_integer():
        amount = int(amount)
    return description, amount


class ExpenseLog:
    """
    経費記録クラス

    使用例:
        log = ExpenseLog(store)
        log.record("Es batu", 15000)
        expenses = log.todays_expenses()
    """

    def __init__(self, store: TransactionStore, offset: timedelta = DEFAULT_DAY_START_OFFSET):
        """
        Args:
            store: 保存サービス
            offset: 営業日の開始オフセット
        """
        self.store = store
        self.offset = offset

    def record(self, description: str, amount, now: Optional[datetime] = None) -> Expense:
        """経費を記録"""
        description, amount = _validate(description, amount)
        expense = Expense(
            id=uuid.uuid4().hex,
            description=description,
            amount=amount,
            timestamp=now or datetime.now(self.store.tz)
        )
        self.store.add_expense(expense.id, expense.description, expense.amount, expense.timestamp)
        return expense

    def todays_expenses(self, now: Optional[datetime] = None) -> List[Expense]:
        """現在の営業日の経費を取得（新しい順）"""
        now = now or datetime.now(self.store.tz)
        start, end = business_day_window(now, self.offset, self.store.tz)
        rows = self.store.list_expenses(start, end)
        logger.info(f"本日の経費: {len(rows)}件 ({start:%Y-%m-%d %H:%M} 〜 {end:%Y-%m-%d %H:%M})")
        return [Expense(*row) for row in rows]

    def update(self, expense_id: str, description: str, amount) -> bool:
        """経費を更新"""
        description, amount = _validate(description, amount)
        return self.store.update_expense(expense_id, description, amount)

    def delete(self, expense_id: str) -> bool:
        """経費を削除"""
        return self.store.delete_expense(expense_id)

    @staticmethod
    def total(expenses: Sequence[Expense]):
        """経費の合計"""
        return sum(expense.amount for expense in expenses)
