"""
営業日判定モジュール

営業日は 04:00 から翌 04:00 まで。深夜0時〜4時の取引は前日の営業日に計上する。
"""
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

# 営業日の開始オフセット
DEFAULT_DAY_START_OFFSET = timedelta(hours=4)
# 店舗のローカルタイムゾーン
DEFAULT_TIMEZONE = ZoneInfo("Asia/Jakarta")


def to_local(instant: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """
    ローカルタイムゾーンの日時に変換

    naive な datetime はローカル時刻として扱う。
    """
    tz = tz or DEFAULT_TIMEZONE
    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant.astimezone(tz)


def business_day_key(
    instant: datetime,
    offset: timedelta = DEFAULT_DAY_START_OFFSET,
    tz: Optional[tzinfo] = None
) -> date:
    """
    日時が属する営業日を取得

    Args:
        instant: 取引日時
        offset: 営業日の開始オフセット（デフォルト: 4時間）
        tz: ローカルタイムゾーン

    Returns:
        date: 営業日（例: 2024-05-10 02:30 → 2024-05-09）
    """
    tz = tz or DEFAULT_TIMEZONE
    # オフセットは絶対時刻（UTC）で引き、その後ローカル日付を取り出す
    shifted = to_local(instant, tz).astimezone(timezone.utc) - offset
    return shifted.astimezone(tz).date()


def business_day_window(
    instant: datetime,
    offset: timedelta = DEFAULT_DAY_START_OFFSET,
    tz: Optional[tzinfo] = None
) -> Tuple[datetime, datetime]:
    """
    日時を含む営業日の範囲 [開始, 終了) を取得

    Returns:
        Tuple[datetime, datetime]: ローカル時刻の開始・終了
    """
    tz = tz or DEFAULT_TIMEZONE
    start = business_day_start(business_day_key(instant, offset, tz), offset, tz)
    return start, start + timedelta(days=1)


def business_day_start(
    day: date,
    offset: timedelta = DEFAULT_DAY_START_OFFSET,
    tz: Optional[tzinfo] = None
) -> datetime:
    """指定日の営業日開始時刻を取得"""
    tz = tz or DEFAULT_TIMEZONE
    return datetime.combine(day, time.min, tzinfo=tz) + offset
