"""
商品マスタサービス（SQLite）
商品の登録・検索・更新・削除を行う
"""
import math
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple
import logging

from .transaction_store import DEFAULT_DB_PATH, get_connection, init_database

logger = logging.getLogger(__name__)

# 並び替え可能な列
SORT_COLUMNS = {
    'name': 'name',
    'selling_price': 'selling_price',
    'cost_price': 'cost_price'
}


def parse_price(value, field_name: str):
    """
    金額を数値に変換

    文字列の数値は変換する。整数値の float は int にする。

    Raises:
        ValueError: 数値でない、真偽値、または負の場合
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{field_name}が不正です: {value!r}")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise ValueError(f"{field_name}が不正です: {value!r}")
    if not isinstance(value, (int, float)) or math.isnan(value) or math.isinf(value):
        raise ValueError(f"{field_name}が不正です: {value!r}")
    if value < 0:
        raise ValueError(f"{field_name}は0以上である必要があります: {value!r}")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return value


@dataclass
class Product:
    """商品マスタ"""
    id: str
    name: str
    selling_price: float
    cost_price: float

    def to_dict(self):
        """辞書形式に変換"""
        return {
            'id': self.id,
            'name': self.name,
            'selling_price': self.selling_price,
            'cost_price': self.cost_price
        }


def _validate(name, selling_price, cost_price):
    """入力チェック"""
    name = str(name).strip() if name is not None else ''
    if not name or selling_price in (None, ''):
        raise ValueError("Harap isi semua kolom!")
    selling_price = parse_price(selling_price, '販売価格')
    cost_price = parse_price(0 if cost_price in (None, '') else cost_price, '原価')
    return name, selling_price, cost_price


class ProductCatalog:
    """
    商品マスタの保存サービス

    使用例:
        catalog = ProductCatalog(db_path)
        product = catalog.add("Kopi Susu", 10000, 4000)
        products, total = catalog.list(search="Kopi", page=0, page_size=10)
    """

    def __init__(self, db_path: Optional[Path] = None):
        """
        Args:
            db_path: データベースファイルパス
        """
        self.db_path = db_path or DEFAULT_DB_PATH
        init_database(self.db_path)

    def add(self, name: str, selling_price, cost_price=0) -> Product:
        """
        商品を登録

        Raises:
            ValueError: 商品名・販売価格が未入力、または金額が不正な場合
        """
        name, selling_price, cost_price = _validate(name, selling_price, cost_price)
        product = Product(
            id=uuid.uuid4().hex,
            name=name,
            selling_price=selling_price,
            cost_price=cost_price
        )
        conn = get_connection(self.db_path)
        try:
            conn.execute(
                'INSERT INTO products (id, name, selling_price, cost_price) VALUES (?, ?, ?, ?)',
                (product.id, product.name, product.selling_price, product.cost_price)
            )
            conn.commit()
        finally:
            conn.close()
        logger.info(f"商品登録: {product.name} (Rp {product.selling_price:,})")
        return product

    def get(self, product_id: str) -> Optional[Product]:
        """IDで商品を取得（該当なしの場合None）"""
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                'SELECT id, name, selling_price, cost_price FROM products WHERE id = ?',
                (product_id,)
            ).fetchone()
        finally:
            conn.close()
        return Product(*row) if row else None

    def list(
        self,
        search: Optional[str] = None,
        page: int = 0,
        page_size: int = 10,
        sort: str = 'name',
        descending: bool = False
    ) -> Tuple[List[Product], int]:
        """
        商品一覧を取得

        Args:
            search: 商品名の前方一致検索（大文字小文字を区別しない）
            page: ページ番号（0始まり）
            page_size: 1ページの件数
            sort: 並び替え列（name / selling_price / cost_price）
            descending: 降順にする場合True

        Returns:
            Tuple[List[Product], int]: (ページ内の商品, 検索に一致した総件数)

        Raises:
            ValueError: ページ指定または並び替え列が不正な場合
        """
        if page < 0 or page_size < 1:
            raise ValueError(f"ページ指定が不正です: page={page}, page_size={page_size}")
        if sort not in SORT_COLUMNS:
            raise ValueError(f"並び替え列が不正です: {sort}")

        where = ''
        params = []
        if search:
            escaped = search.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
            where = "WHERE name LIKE ? ESCAPE '\\'"
            params.append(f"{escaped}%")

        order = 'DESC' if descending else 'ASC'
        conn = get_connection(self.db_path)
        try:
            total = conn.execute(f'SELECT COUNT(*) FROM products {where}', params).fetchone()[0]
            rows = conn.execute(f'''
                SELECT id, name, selling_price, cost_price FROM products {where}
                ORDER BY {SORT_COLUMNS[sort]} {order}, name ASC, id ASC
                LIMIT ? OFFSET ?
            ''', params + [page_size, page * page_size]).fetchall()
        finally:
            conn.close()

        logger.info(f"商品一覧: {len(rows)}件 / {total}件 (検索: {search or 'なし'})")
        return [Product(*row) for row in rows], total

    def update(self, product_id: str, name: str, selling_price, cost_price=0) -> bool:
        """
        商品を更新（該当なしの場合False）

        Raises:
            ValueError: 商品名・販売価格が未入力、または金額が不正な場合
        """
        name, selling_price, cost_price = _validate(name, selling_price, cost_price)
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                'UPDATE products SET name = ?, selling_price = ?, cost_price = ? WHERE id = ?',
                (name, selling_price, cost_price, product_id)
            )
            conn.commit()
            updated = cursor.rowcount > 0
        finally:
            conn.close()
        if not updated:
            logger.warning(f"商品が見つかりません: {product_id}")
        return updated

    def delete(self, product_id: str) -> bool:
        """商品を削除（該当なしの場合False）"""
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute('DELETE FROM products WHERE id = ?', (product_id,))
            conn.commit()
            deleted = cursor.rowcount > 0
        finally:
            conn.close()
        if not deleted:
            logger.warning(f"商品が見つかりません: {product_id}")
        return deleted
