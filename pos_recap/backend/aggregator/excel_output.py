"""
Excel出力モジュール
取引サマリーシートと明細シートを作成し、xlsxとして出力する
"""
import io
import pandas as pd
from datetime import datetime, tzinfo
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
import logging

from openpyxl.utils import get_column_letter

from .business_day import to_local
from .recap import RecapResult, SalesRecap
from .transactions import TransactionRecord

logger = logging.getLogger(__name__)

# インドネシア語の月名（短縮形）
MONTH_NAMES_ID = [
    "Jan", "Feb", "Mar", "Apr", "Mei", "Jun",
    "Jul", "Agu", "Sep", "Okt", "Nov", "Des"
]


class NothingToExportError(Exception):
    """出力対象の取引が無い場合の例外"""
    def __init__(self, message: str = "Tidak ada data untuk diekspor."):
        super().__init__(message)


def format_timestamp(timestamp: Optional[datetime], tz: Optional[tzinfo] = None) -> str:
    """
    取引日時を表示用にフォーマット

    例: 2024-05-10 02:30 → "10 Mei 2024, 02.30"
    """
    if timestamp is None:
        return ""
    local = to_local(timestamp, tz)
    return (
        f"{local.day} {MONTH_NAMES_ID[local.month - 1]} {local.year}, "
        f"{local.hour:02d}.{local.minute:02d}"
    )


class ReportExporter:
    """
    Excel出力クラス

    使用例:
        exporter = ReportExporter(filtered_records, recap_result, reference_date)
        filepath = exporter.export(output_dir=Path.home() / "Downloads")
    """

    SUMMARY_SHEET = "Ringkasan Transaksi"
    DETAIL_SHEET = "Detail Item Terjual"

    SUMMARY_COLUMNS = [
        "Waktu Transaksi",
        "Metode Pembayaran",
        "Item Dibeli (Qty)",
        "Total Penjualan (Kotor)",
        "Total Modal",
        "Laba Bersih",
        "Total Item"
    ]
    DETAIL_COLUMNS = [
        "Waktu Transaksi",
        "Metode Pembayaran",
        "Nama Produk",
        "Kuantitas",
        "Harga Jual Satuan",
        "Harga Modal Satuan"
    ]

    # 列幅（文字数）
    SUMMARY_COLUMN_WIDTHS = [20, 18, 50, 20, 20, 20, 15]
    DETAIL_COLUMN_WIDTHS = [20, 18, 30, 10, 20, 20]

    TOTAL_LABEL = "TOTAL"

    def __init__(
        self,
        records: Sequence[TransactionRecord],
        recap: Optional[RecapResult] = None,
        reference_date: Optional[datetime] = None,
        tz: Optional[tzinfo] = None
    ):
        """
        Args:
            records: 期間フィルタ済みの取引レコード
            recap: 集計結果（省略時は records から計算）
            reference_date: 基準日時（ファイル名に使用、デフォルト: 現在）
            tz: ローカルタイムゾーン
        """
        self.records = list(records)
        self.recap = recap if recap is not None else SalesRecap(self.records).calculate()
        self.reference_date = reference_date or datetime.now()
        self.tz = tz
        self.filename = f"Rekap Penjualan - {self.reference_date.strftime('%Y-%m-%d')}.xlsx"

    def build_sheets(self) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        サマリーシートと明細シートのデータを作成

        Returns:
            Tuple[pd.DataFrame, pd.DataFrame]: (サマリー, 明細)

        Raises:
            NothingToExportError: 出力対象の取引が無い場合
        """
        if not self.records:
            raise NothingToExportError()

        summary_rows = self._summary_rows()
        detail_rows = self._detail_rows()

        summary_rows.append({
            "Waktu Transaksi": self.TOTAL_LABEL,
            "Metode Pembayaran": "",
            "Item Dibeli (Qty)": "",
            "Total Penjualan (Kotor)": self.recap.gross_revenue,
            "Total Modal": self.recap.cost_basis,
            "Laba Bersih": self.recap.net_profit,
            "Total Item": sum(row["Kuantitas"] for row in detail_rows)
        })

        summary_df = pd.DataFrame(summary_rows, columns=self.SUMMARY_COLUMNS)
        detail_df = pd.DataFrame(detail_rows, columns=self.DETAIL_COLUMNS)
        logger.info(f"シート作成完了: 取引{len(self.records)}件, 明細{len(detail_rows)}件")
        return summary_df, detail_df

    def _summary_rows(self) -> List[dict]:
        """取引ごとのサマリー行"""
        rows = []
        for record in self.records:
            cost_total = record.cost_total or 0
            rows.append({
                "Waktu Transaksi": format_timestamp(record.timestamp, self.tz),
                "Metode Pembayaran": record.payment_method.label,
                "Item Dibeli (Qty)": ", ".join(
                    f"{item.product_name} ({item.quantity})" for item in record.line_items
                ),
                "Total Penjualan (Kotor)": record.gross_total,
                "Total Modal": cost_total,
                "Laba Bersih": record.net_total,
                "Total Item": record.item_count
            })
        return rows

    def _detail_rows(self) -> List[dict]:
        """明細ごとの行（取引順・明細順）"""
        rows = []
        for record in self.records:
            timestamp = format_timestamp(record.timestamp, self.tz)
            for item in record.line_items:
                rows.append({
                    "Waktu Transaksi": timestamp,
                    "Metode Pembayaran": record.payment_method.label,
                    "Nama Produk": item.product_name,
                    "Kuantitas": item.quantity,
                    "Harga Jual Satuan": item.unit_price,
                    "Harga Modal Satuan": item.unit_cost or 0
                })
        return rows

    def export(self, output_dir: Optional[Path] = None) -> Path:
        """
        Excelファイルを出力

        Args:
            output_dir: 出力ディレクトリ（デフォルト: ~/Downloads）

        Returns:
            Path: 出力ファイルパス

        Raises:
            NothingToExportError: 出力対象の取引が無い場合
        """
        summary_df, detail_df = self.build_sheets()

        output_dir = Path(output_dir) if output_dir else Path.home() / "Downloads"
        output_dir.mkdir(parents=True, exist_ok=True)
        filepath = output_dir / self.filename

        logger.info(f"Excel出力開始: {filepath}")
        self._write(filepath, summary_df, detail_df)
        logger.info(f"Excel出力完了: {filepath}")
        return filepath

    def to_bytes(self) -> bytes:
        """
        Excelファイルをメモリ上に作成（ダウンロード用）

        Raises:
            NothingToExportError: 出力対象の取引が無い場合
        """
        summary_df, detail_df = self.build_sheets()
        buffer = io.BytesIO()
        self._write(buffer, summary_df, detail_df)
        return buffer.getvalue()

    def _write(self, target, summary_df: pd.DataFrame, detail_df: pd.DataFrame) -> None:
        """ExcelWriterで2シートを書き込み"""
        with pd.ExcelWriter(target, engine="openpyxl") as writer:
            summary_df.to_excel(writer, sheet_name=self.SUMMARY_SHEET, index=False)
            detail_df.to_excel(writer, sheet_name=self.DETAIL_SHEET, index=False)
            self._apply_column_widths(
                writer.sheets[self.SUMMARY_SHEET], self.SUMMARY_COLUMN_WIDTHS
            )
            self._apply_column_widths(
                writer.sheets[self.DETAIL_SHEET], self.DETAIL_COLUMN_WIDTHS
            )

    @staticmethod
    def _apply_column_widths(worksheet, widths: Sequence[int]) -> None:
        """列幅を設定"""
        for index, width in enumerate(widths, start=1):
            worksheet.column_dimensions[get_column_letter(index)].width = width
