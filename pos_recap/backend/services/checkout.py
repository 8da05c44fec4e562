"""
チェックアウトサービス
カートから取引レコードを作成する（合計はここで一度だけ計算する）
"""
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence
import logging

from ..aggregator.transactions import LineItem, PaymentMethod, TransactionRecord
from .product_catalog import Product, ProductCatalog, parse_price

logger = logging.getLogger(__name__)


class EmptyCartError(ValueError):
    """カートが空の場合の例外"""
    def __init__(self):
        super().__init__("Keranjang masih kosong.")


class UnknownProductError(ValueError):
    """商品マスタに存在しない商品の場合の例外"""
    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"商品が見つかりません: {product_id}")


@dataclass
class CartItem:
    """カート内の商品"""
    product_id: str
    product_name: str
    selling_price: float
    cost_price: float
    quantity: int = 1

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        """
        辞書からカート商品を作成

        Raises:
            ValueError: 必須項目が不足している場合、または金額・数量が不正な場合
        """
        missing = [
            key for key in ('product_name', 'selling_price')
            if data.get(key) in (None, '')
        ]
        if missing:
            raise ValueError(f"カート商品に必須項目がありません: {missing}")
        cost_price = data.get('cost_price')
        return cls(
            product_id=str(data.get('product_id', '')),
            product_name=str(data['product_name']),
            selling_price=parse_price(data['selling_price'], '販売価格'),
            cost_price=parse_price(0 if cost_price in (None, '') else cost_price, '原価'),
            quantity=_parse_quantity(data.get('quantity', 1))
        )

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1) -> "CartItem":
        """商品マスタからカート商品を作成（価格はマスタの値を使う）"""
        return cls(
            product_id=product.id,
            product_name=product.name,
            selling_price=product.selling_price,
            cost_price=product.cost_price,
            quantity=quantity
        )


def _parse_quantity(value) -> int:
    """数量を整数に変換"""
    if isinstance(value, bool):
        raise ValueError(f"数量が不正です: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"数量が不正です: {value!r}")


def build_cart(items: Sequence[dict], catalog: ProductCatalog) -> List[CartItem]:
    """
    product_id と数量から商品マスタを引いてカートを作成

    Args:
        items: {'product_id': ..., 'quantity': ...} のリスト
        catalog: 商品マスタ

    Raises:
        UnknownProductError: 商品マスタに存在しない商品の場合
        ValueError: 数量が不正な場合
    """
    cart = []
    for item in items:
        product_id = item.get('product_id')
        product = catalog.get(product_id) if product_id else None
        if product is None:
            raise UnknownProductError(product_id)
        cart.append(CartItem.from_product(product, _parse_quantity(item.get('quantity', 1))))
    return cart


def cart_total(cart: Sequence[CartItem]):
    """カートの販売合計"""
    return sum(item.selling_price * max(1, item.quantity) for item in cart)


def checkout(
    cart: Sequence[CartItem],
    payment_method,
    now: Optional[datetime] = None
) -> TransactionRecord:
    """
    カートを確定して取引レコードを作成

    Args:
        cart: カート内の商品
        payment_method: 支払方法
        now: 確定日時（デフォルト: 現在）

    Returns:
        TransactionRecord: 作成された取引

    Raises:
        EmptyCartError: カートが空の場合
        ValueError: 不明な支払方法の場合
    """
    if not cart:
        raise EmptyCartError()

    method = PaymentMethod(payment_method)
    line_items = tuple(
        LineItem(
            product_name=item.product_name,
            unit_price=item.selling_price,
            unit_cost=item.cost_price,
            # 数量は1未満にしない
            quantity=max(1, item.quantity),
            product_id=item.product_id
        )
        for item in cart
    )

    record = TransactionRecord(
        id=uuid.uuid4().hex,
        timestamp=now or datetime.now().astimezone(),
        payment_method=method,
        line_items=line_items,
        gross_total=sum(item.revenue for item in line_items),
        cost_total=sum(item.cost for item in line_items)
    )
    logger.info(
        f"チェックアウト: {record.id} {method.label} "
        f"{len(line_items)}品目 Rp {record.gross_total:,}"
    )
    return record
