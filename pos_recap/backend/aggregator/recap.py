"""
売上集計計算モジュール
期間で絞り込んだ取引から売上・原価・利益、支払方法別売上、商品別集計を算出する
"""
import pandas as pd
from dataclasses import dataclass, field
from operator import attrgetter
from typing import Dict, Iterable, List
import logging

from .transactions import PaymentMethod, TransactionRecord

logger = logging.getLogger(__name__)


def _to_python(value):
    """numpy のスカラーを Python の数値に変換"""
    return value.item() if hasattr(value, "item") else value


@dataclass
class ProductRollup:
    """商品別集計レコード"""
    product_name: str
    total_quantity: int
    total_revenue: float

    def to_dict(self):
        """辞書形式に変換"""
        return {
            'product_name': self.product_name,
            'total_quantity': self.total_quantity,
            'total_revenue': self.total_revenue
        }


def _empty_method_totals() -> Dict[PaymentMethod, float]:
    return {method: 0 for method in PaymentMethod}


@dataclass
class RecapResult:
    """集計結果を格納するデータクラス"""
    gross_revenue: float = 0          # 売上合計（総額）
    cost_basis: float = 0             # 原価合計
    net_profit: float = 0             # 純利益
    revenue_by_payment_method: Dict[PaymentMethod, float] = field(
        default_factory=_empty_method_totals
    )
    product_rollups: List[ProductRollup] = field(default_factory=list)
    transaction_count: int = 0

    def to_dict(self):
        """辞書形式に変換"""
        return {
            'gross_revenue': self.gross_revenue,
            'cost_basis': self.cost_basis,
            'net_profit': self.net_profit,
            'revenue_by_payment_method': {
                method.value: total
                for method, total in self.revenue_by_payment_method.items()
            },
            'product_rollups': [r.to_dict() for r in self.product_rollups],
            'transaction_count': self.transaction_count
        }


class SalesRecap:
    """
    売上集計計算クラス

    保存済みの gross_total / cost_total をそのまま合計する（明細からの再計算はしない）。
    calculate() は何度呼んでも同じ結果を返す。

    使用例:
        recap = SalesRecap(filtered_records)
        result = recap.calculate()
    """

    TRANSACTION_COLUMNS = ["payment_method", "gross_total", "cost_total"]
    ITEM_COLUMNS = ["product_name", "quantity", "revenue"]

    def __init__(self, records: Iterable[TransactionRecord]):
        """
        Args:
            records: 期間フィルタ済みの取引レコード
        """
        self.records = list(records)
        self.result = RecapResult()

    def calculate(self) -> RecapResult:
        """
        全ての集計を実行

        Returns:
            RecapResult: 集計結果
        """
        self.result = RecapResult(transaction_count=len(self.records))
        transactions_df = self._transactions_frame()

        self._calculate_totals(transactions_df)
        self._calculate_by_payment_method(transactions_df)
        self._calculate_product_rollups()
        return self.result

    def _transactions_frame(self) -> pd.DataFrame:
        """取引単位のデータフレームを作成"""
        rows = [
            {
                "payment_method": record.payment_method.value,
                "gross_total": record.gross_total,
                # 原価合計が無い旧データは0として扱う
                "cost_total": record.cost_total or 0,
            }
            for record in self.records
        ]
        return pd.DataFrame(rows, columns=self.TRANSACTION_COLUMNS)

    def _items_frame(self) -> pd.DataFrame:
        """明細単位のデータフレームを作成"""
        rows = [
            {
                "product_name": item.product_name,
                "quantity": item.quantity,
                "revenue": item.unit_price * item.quantity,
            }
            for record in self.records
            for item in record.line_items
        ]
        return pd.DataFrame(rows, columns=self.ITEM_COLUMNS)

    def _calculate_totals(self, df: pd.DataFrame) -> None:
        """売上・原価・純利益を計算"""
        if df.empty:
            logger.info("集計対象の取引がありません")
            return

        self.result.gross_revenue = _to_python(df["gross_total"].sum())
        self.result.cost_basis = _to_python(df["cost_total"].sum())
        self.result.net_profit = self.result.gross_revenue - self.result.cost_basis
        logger.info(f"売上合計: Rp {self.result.gross_revenue:,}")
        logger.info(f"原価合計: Rp {self.result.cost_basis:,}")
        logger.info(f"純利益: Rp {self.result.net_profit:,}")

    def _calculate_by_payment_method(self, df: pd.DataFrame) -> None:
        """支払方法別の売上を計算"""
        totals = _empty_method_totals()
        if not df.empty:
            sums = df.groupby("payment_method", sort=False)["gross_total"].sum()
            for method in PaymentMethod:
                if method.value in sums.index:
                    totals[method] = _to_python(sums[method.value])

        self.result.revenue_by_payment_method = totals
        for method, total in totals.items():
            logger.debug(f"{method.label}: Rp {total:,}")

    def _calculate_product_rollups(self) -> None:
        """商品別の販売数・売上を集計（販売数の降順、同数は出現順）"""
        items_df = self._items_frame()
        if items_df.empty:
            self.result.product_rollups = []
            return

        # sort=False で初出順を維持する
        grouped = items_df.groupby("product_name", sort=False)[["quantity", "revenue"]].sum()
        rollups = [
            ProductRollup(
                product_name=product_name,
                total_quantity=_to_python(quantity),
                total_revenue=_to_python(revenue)
            )
            for product_name, quantity, revenue in zip(
                grouped.index, grouped["quantity"], grouped["revenue"]
            )
        ]
        # sorted は安定ソート（reverse=True でも同順位の順序を保つ）
        self.result.product_rollups = sorted(
            rollups, key=attrgetter("total_quantity"), reverse=True
        )
        logger.info(f"商品別集計完了: {len(self.result.product_rollups)}商品")


def aggregate(records: Iterable[TransactionRecord]) -> RecapResult:
    """売上集計の関数版"""
    return SalesRecap(records).calculate()
