"""
期間フィルタモジュール
日次・月次・年次の粒度で取引を抽出する
"""
from datetime import datetime, timedelta, tzinfo
from enum import Enum
from typing import Iterable, List, Optional
import logging

from .business_day import DEFAULT_DAY_START_OFFSET, business_day_key, to_local
from .transactions import TransactionRecord

logger = logging.getLogger(__name__)


class Granularity(str, Enum):
    """集計粒度"""
    DAILY = "daily"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class PeriodFilter:
    """
    期間フィルタクラス

    日次は営業日（04:00区切り）で判定し、月次・年次は暦の年月で判定する。
    月次・年次にはオフセットを適用しない。

    使用例:
        period_filter = PeriodFilter("daily", datetime.now())
        filtered = period_filter.apply(records)
    """

    def __init__(
        self,
        granularity,
        reference_date: datetime,
        offset: timedelta = DEFAULT_DAY_START_OFFSET,
        tz: Optional[tzinfo] = None
    ):
        """
        Args:
            granularity: 集計粒度（Granularity または "daily" / "monthly" / "yearly"）
            reference_date: 基準日時
            offset: 営業日の開始オフセット
            tz: ローカルタイムゾーン

        Raises:
            ValueError: 不明な粒度の場合
            TypeError: 基準日時が datetime でない場合
        """
        if not isinstance(reference_date, datetime):
            raise TypeError(f"基準日時は datetime である必要があります: {reference_date!r}")

        self.granularity = Granularity(granularity)
        self.offset = offset
        self.tz = tz
        self.reference_date = to_local(reference_date, tz)
        self._reference_key = business_day_key(self.reference_date, offset, tz)

    def matches(self, record: TransactionRecord) -> bool:
        """レコードが期間に含まれるか判定"""
        timestamp = record.timestamp
        if not isinstance(timestamp, datetime):
            return False

        if self.granularity is Granularity.DAILY:
            return business_day_key(timestamp, self.offset, self.tz) == self._reference_key

        local = to_local(timestamp, self.tz)
        if self.granularity is Granularity.MONTHLY:
            return (
                local.year == self.reference_date.year
                and local.month == self.reference_date.month
            )
        if self.granularity is Granularity.YEARLY:
            return local.year == self.reference_date.year

        raise ValueError(f"未対応の粒度です: {self.granularity}")

    def apply(self, records: Iterable[TransactionRecord]) -> List[TransactionRecord]:
        """
        期間に一致するレコードを抽出（元の順序を維持）

        タイムスタンプが無いレコードは常に除外する。
        """
        filtered = []
        skipped = 0
        for record in records:
            if not isinstance(record.timestamp, datetime):
                skipped += 1
                logger.debug(f"タイムスタンプ無しのため除外: {record.id}")
                continue
            if self.matches(record):
                filtered.append(record)

        logger.info(
            f"期間フィルタ完了（{self.granularity.value}）: {len(filtered)}件"
            + (f"、タイムスタンプ無し{skipped}件を除外" if skipped else "")
        )
        return filtered


def filter_transactions(
    records: Iterable[TransactionRecord],
    granularity,
    reference_date: datetime,
    offset: timedelta = DEFAULT_DAY_START_OFFSET,
    tz: Optional[tzinfo] = None
) -> List[TransactionRecord]:
    """期間フィルタの関数版"""
    return PeriodFilter(granularity, reference_date, offset, tz).apply(records)
