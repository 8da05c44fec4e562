"""
取引・経費データの保存サービス（SQLite）
"""
import sqlite3
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import List, Optional
import logging

from ..aggregator.business_day import DEFAULT_TIMEZONE, to_local
from ..aggregator.transactions import LineItem, PaymentMethod, TransactionRecord

logger = logging.getLogger(__name__)

# デフォルトのDBパス
DEFAULT_DB_PATH = Path(__file__).parent.parent.parent.parent / 'pos_recap.db'

# 保存形式（UTC、固定長で文字列比較が可能）
TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S.%f'


class StoredDataError(Exception):
    """保存済みデータが読み込めない場合の例外"""
    pass


def get_connection(db_path=None):
    """データベース接続を取得"""
    if db_path is None:
        db_path = DEFAULT_DB_PATH

    conn = sqlite3.connect(
        str(db_path),
        timeout=30.0,
        check_same_thread=False
    )

    # WALモード有効化（並行アクセス対応）
    conn.execute('PRAGMA journal_mode=WAL')
    conn.execute('PRAGMA synchronous=NORMAL')
    conn.execute('PRAGMA foreign_keys = ON')  # 外部キー制約有効化

    return conn


def init_database(db_path=None):
    """データベースを初期化（全テーブル作成）"""
    conn = get_connection(db_path)
    try:
        cursor = conn.cursor()

        # 1. transactions (取引)
        # NUMERIC: 整数の金額は整数のまま保持する
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS transactions (
                id TEXT PRIMARY KEY,
                timestamp TEXT,
                payment_method TEXT NOT NULL,
                gross_total NUMERIC NOT NULL,
                cost_total NUMERIC
            )
        ''')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_transactions_ts ON transactions(timestamp)')

        # 2. transaction_items (取引明細)
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS transaction_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                transaction_id TEXT NOT NULL,
                position INTEGER NOT NULL,
                product_id TEXT,
                product_name TEXT NOT NULL,
                unit_price NUMERIC NOT NULL,
                unit_cost NUMERIC NOT NULL DEFAULT 0,
                quantity INTEGER NOT NULL,
                FOREIGN KEY (transaction_id) REFERENCES transactions(id) ON DELETE CASCADE,
                UNIQUE(transaction_id, position)
            )
        ''')

        # 3. expenses (経費)
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS expenses (
                id TEXT PRIMARY KEY,
                description TEXT NOT NULL,
                amount NUMERIC NOT NULL,
                timestamp TEXT NOT NULL
            )
        ''')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_expenses_ts ON expenses(timestamp)')

        # 4. products (商品マスタ)
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS products (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                selling_price NUMERIC NOT NULL,
                cost_price NUMERIC NOT NULL DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_products_name ON products(name)')

        conn.commit()
    finally:
        conn.close()
    logger.info(f"データベース初期化完了: {db_path or DEFAULT_DB_PATH}")


def format_timestamp(timestamp: datetime, tz: Optional[tzinfo] = None) -> str:
    """保存用にUTC文字列へ変換"""
    return to_local(timestamp, tz).astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    保存済みタイムスタンプを解析

    欠損・不正な値は None を返す（集計時に除外される）。
    """
    if not value:
        return None
    try:
        parsed = datetime.strptime(str(value), TIMESTAMP_FORMAT)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError:
            logger.warning(f"不正なタイムスタンプ: {value!r}")
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=tz or DEFAULT_TIMEZONE)
        return parsed.astimezone(tz or DEFAULT_TIMEZONE)
    return parsed.replace(tzinfo=timezone.utc).astimezone(tz or DEFAULT_TIMEZONE)


class TransactionStore:
    """
    取引・経費の保存サービス

    取引は追記のみ。load_transactions() は全件を登録順で返すスナップショット。
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        tz: Optional[tzinfo] = None,
        strict_totals: bool = False
    ):
        """
        Args:
            db_path: データベースファイルパス
            tz: ローカルタイムゾーン
            strict_totals: Trueの場合、合計不一致の取引で例外を送出
        """
        self.db_path = db_path or DEFAULT_DB_PATH
        self.tz = tz or DEFAULT_TIMEZONE
        self.strict_totals = strict_totals
        init_database(self.db_path)

    def add_transaction(self, record: TransactionRecord) -> TransactionRecord:
        """取引を保存"""
        conn = get_connection(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute('''
                INSERT INTO transactions (id, timestamp, payment_method, gross_total, cost_total)
                VALUES (?, ?, ?, ?, ?)
            ''', (
                record.id,
                format_timestamp(record.timestamp, self.tz) if record.timestamp else None,
                record.payment_method.value,
                record.gross_total,
                record.cost_total
            ))
            cursor.executemany('''
                INSERT INTO transaction_items
                (transaction_id, position, product_id, product_name, unit_price, unit_cost, quantity)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            ''', [
                (record.id, position, item.product_id, item.product_name,
                 item.unit_price, item.unit_cost, item.quantity)
                for position, item in enumerate(record.line_items)
            ])
            conn.commit()
        finally:
            conn.close()

        logger.info(
            f"取引保存: {record.id} ({record.payment_method.label}, Rp {record.gross_total:,})"
        )
        return record

    def load_transactions(self) -> List[TransactionRecord]:
        """
        全取引を読み込み（登録順）

        Raises:
            TotalsMismatchError: strict_totals=True で合計不一致がある場合
            StoredDataError: 不明な支払方法が保存されている場合
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT id, timestamp, payment_method, gross_total, cost_total
                FROM transactions ORDER BY rowid
            ''')
            rows = cursor.fetchall()

            cursor.execute('''
                SELECT transaction_id, product_id, product_name, unit_price, unit_cost, quantity
                FROM transaction_items ORDER BY transaction_id, position
            ''')
            items_by_transaction = {}
            for transaction_id, product_id, name, price, cost, quantity in cursor.fetchall():
                items_by_transaction.setdefault(transaction_id, []).append(
                    LineItem(
                        product_name=name,
                        unit_price=price,
                        unit_cost=cost,
                        quantity=quantity,
                        product_id=product_id
                    )
                )
        finally:
            conn.close()

        records = []
        for transaction_id, timestamp, method, gross_total, cost_total in rows:
            try:
                payment_method = PaymentMethod(method)
            except ValueError:
                raise StoredDataError(f"取引 {transaction_id} の支払方法が不明です: {method!r}")
            record = TransactionRecord(
                id=transaction_id,
                timestamp=parse_timestamp(timestamp, self.tz),
                payment_method=payment_method,
                line_items=tuple(items_by_transaction.get(transaction_id, [])),
                gross_total=gross_total,
                cost_total=cost_total
            )
            record.check_totals(strict=self.strict_totals)
            records.append(record)

        logger.info(f"取引読み込み: {len(records)}件")
        return records

    def add_expense(self, expense_id: str, description: str, amount, timestamp: datetime) -> None:
        """経費を保存"""
        conn = get_connection(self.db_path)
        try:
            conn.execute(
                'INSERT INTO expenses (id, description, amount, timestamp) VALUES (?, ?, ?, ?)',
                (expense_id, description, amount, format_timestamp(timestamp, self.tz))
            )
            conn.commit()
        finally:
            conn.close()
        logger.info(f"経費保存: {description} (Rp {amount:,})")

    def update_expense(self, expense_id: str, description: str, amount) -> bool:
        """経費を更新（該当なしの場合False）"""
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                'UPDATE expenses SET description = ?, amount = ? WHERE id = ?',
                (description, amount, expense_id)
            )
            conn.commit()
            updated = cursor.rowcount > 0
        finally:
            conn.close()
        if not updated:
            logger.warning(f"経費が見つかりません: {expense_id}")
        return updated

    def delete_expense(self, expense_id: str) -> bool:
        """経費を削除（該当なしの場合False）"""
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute('DELETE FROM expenses WHERE id = ?', (expense_id,))
            conn.commit()
            deleted = cursor.rowcount > 0
        finally:
            conn.close()
        if not deleted:
            logger.warning(f"経費が見つかりません: {expense_id}")
        return deleted

    def list_expenses(self, start: datetime, end: datetime) -> List[tuple]:
        """
        期間内の経費を取得（新しい順）

        Returns:
            List[tuple]: (id, description, amount, timestamp) のリスト
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute('''
                SELECT id, description, amount, timestamp FROM expenses
                WHERE timestamp >= ? AND timestamp < ?
                ORDER BY timestamp DESC
            ''', (format_timestamp(start, self.tz), format_timestamp(end, self.tz)))
            rows = cursor.fetchall()
        finally:
            conn.close()
        return [
            (expense_id, description, amount, parse_timestamp(timestamp, self.tz))
            for expense_id, description, amount, timestamp in rows
        ]
