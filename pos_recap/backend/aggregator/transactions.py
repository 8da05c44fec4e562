"""
取引データモデル
チェックアウト時に一度だけ作成され、以後変更されない取引レコード
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class PaymentMethod(str, Enum):
    """支払方法（閉じた列挙）"""
    CASH = "cash"
    QRIS = "qris"
    CREDIT = "credit"  # 後払い（未収）

    @classmethod
    def _missing_(cls, value):
        # 旧データでは後払いを "hutang" として保存している
        if isinstance(value, str) and value.strip().lower() == "hutang":
            return cls.CREDIT
        if isinstance(value, str) and value.strip().lower() != value:
            return cls(value.strip().lower())
        return None

    @property
    def label(self) -> str:
        """表示用ラベル（大文字）"""
        return self.value.upper()


class TotalsMismatchError(ValueError):
    """保存済み合計が明細と一致しない場合の例外"""
    def __init__(self, transaction_id: str, field_name: str, stored, computed):
        self.transaction_id = transaction_id
        self.field_name = field_name
        self.stored = stored
        self.computed = computed
        message = (
            f"取引 {transaction_id} の{field_name}が明細と一致しません: "
            f"保存値={stored}, 明細合計={computed}"
        )
        super().__init__(message)


@dataclass(frozen=True)
class LineItem:
    """取引明細"""
    product_name: str
    unit_price: float
    unit_cost: float
    quantity: int
    product_id: Optional[str] = None

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError(
                f"数量は1以上である必要があります: {self.product_name} ({self.quantity})"
            )

    @property
    def revenue(self):
        return self.unit_price * self.quantity

    @property
    def cost(self):
        return self.unit_cost * self.quantity

    def to_dict(self):
        """辞書形式に変換"""
        return {
            'product_id': self.product_id,
            'product_name': self.product_name,
            'unit_price': self.unit_price,
            'unit_cost': self.unit_cost,
            'quantity': self.quantity
        }


@dataclass(frozen=True)
class TransactionRecord:
    """
    取引レコード

    gross_total / cost_total はチェックアウト時に計算された値をそのまま保持する。
    集計側では再計算しない。
    """
    id: str
    timestamp: Optional[datetime]
    payment_method: PaymentMethod
    line_items: Tuple[LineItem, ...] = field(default_factory=tuple)
    gross_total: float = 0
    cost_total: Optional[float] = None

    @property
    def item_count(self) -> int:
        """明細数量の合計"""
        return sum(item.quantity for item in self.line_items)

    @property
    def net_total(self):
        return self.gross_total - (self.cost_total or 0)

    def check_totals(self, strict: bool = False) -> bool:
        """
        保存済み合計と明細の整合性をチェック

        Args:
            strict: Trueの場合、不一致で例外を送出する

        Returns:
            bool: 一致していればTrue

        Raises:
            TotalsMismatchError: strict=True かつ不一致の場合
        """
        computed_gross = sum(item.revenue for item in self.line_items)
        computed_cost = sum(item.cost for item in self.line_items)

        checks = [("販売合計", self.gross_total, computed_gross)]
        # 旧データは原価合計を持たないことがある
        if self.cost_total is not None:
            checks.append(("原価合計", self.cost_total, computed_cost))

        consistent = True
        for field_name, stored, computed in checks:
            if stored == computed:
                continue
            consistent = False
            if strict:
                raise TotalsMismatchError(self.id, field_name, stored, computed)
            logger.warning(
                f"取引 {self.id}: {field_name}が明細と一致しません"
                f"（保存値={stored}, 明細合計={computed}）。保存値を使用します"
            )
        return consistent

    def to_dict(self):
        """辞書形式に変換"""
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
            'payment_method': self.payment_method.value,
            'items': [item.to_dict() for item in self.line_items],
            'gross_total': self.gross_total,
            'cost_total': self.cost_total,
            'item_count': self.item_count
        }
