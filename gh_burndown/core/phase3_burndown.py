"""
Phase 3: バーンダウン計算
アイテム一覧と終了日から理想線・実績線を計算する。外部 I/O は行わない。
"""

import logging
import re
from datetime import date, timedelta, timezone, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence

from .types import BoardItem, BurndownSeries

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 14

CLOSED_AT_MARKER = re.compile(
    r"<closed-at>\s*(\d{4}-\d{2}-\d{2})\s*</closed-at>",
    re.IGNORECASE,
)


def parse_closed_at_override(body: Optional[str]) -> Optional[date]:
    """本文中の ``<closed-at>YYYY-MM-DD</closed-at>`` を日付として返す

    最初に見つかった有効な日付を使う。存在しない日付（2024-02-30 など）は無視。
    """
    if not body:
        return None
    for match in CLOSED_AT_MARKER.finditer(body):
        try:
            return date.fromisoformat(match.group(1))
        except ValueError:
            continue
    return None


def resolve_burn_date(item: BoardItem, tz: tzinfo = timezone.utc) -> Optional[date]:
    """アイテムのポイントが消化された日を決定する（本文の指定が優先）"""
    override = parse_closed_at_override(item.body_text)
    if override is not None:
        return override
    if item.closed_at is None:
        return None
    closed = item.closed_at
    if closed.tzinfo is None:
        closed = closed.replace(tzinfo=timezone.utc)
    return closed.astimezone(tz).date()


def is_included(item: BoardItem, sprint_label: Optional[str]) -> bool:
    if not sprint_label:
        return True
    if not item.has_labels:
        return False
    return sprint_label in item.labels


def build_date_range(start: date, end: date) -> List[date]:
    days: List[date] = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days


def aggregate_daily_burn(
    items: Iterable[BoardItem],
    dates: Sequence[date],
    tz: tzinfo = timezone.utc,
) -> Dict[date, float]:
    """日付ごとの消化ポイントを集計する

    ラベルフィルタに関係なく全アイテムの消化日を記録する。
    """
    burns: Dict[date, float] = {d: 0.0 for d in dates}
    for item in items:
        burn_date = resolve_burn_date(item, tz)
        if burn_date is None or burn_date not in burns:
            continue
        burns[burn_date] += item.estimate_points
    return burns


def calculate_ideal_burndown(total_points: float, num_days: int) -> List[float]:
    if num_days <= 1:
        return [max(0.0, total_points)]
    last = num_days - 1
    # last point is exactly 0 regardless of float rounding; never below 0
    return [max(0.0, total_points * (last - i) / last) for i in range(num_days)]


def calculate_actual_burndown(total_points: float, daily_burns: Sequence[float]) -> List[float]:
    """前日の残量から当日の消化分を引いていく（0 未満でも丸めない）"""
    actual: List[float] = []
    previous = total_points
    for burned in daily_burns:
        current = previous - burned
        actual.append(current)
        previous = current
    return actual


def compute_burndown(
    items: Iterable[BoardItem],
    end_date: date,
    sprint_label: Optional[str] = None,
    tz: tzinfo = timezone.utc,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    enable_logging: bool = False,
) -> BurndownSeries:
    """
    バーンダウン系列を計算する。

    Args:
        items: ボードアイテム
        end_date: 期間の最終日（この日を含む）
        sprint_label: 指定時はこのラベルを持つアイテムのみ合計ポイントに含める
        tz: 消化日の日付判定に使うタイムゾーン
        lookback_days: 終了日から遡る日数（開始日 = 終了日 - lookback_days）
        enable_logging: ログ出力を有効化するかどうか

    Returns:
        BurndownSeries
    """
    items = list(items)
    start_date = end_date - timedelta(days=max(0, lookback_days))
    dates = build_date_range(start_date, end_date)

    total_points = sum(item.estimate_points for item in items if is_included(item, sprint_label))

    burns_by_day = aggregate_daily_burn(items, dates, tz)
    daily_burns = [burns_by_day[d] for d in dates]

    series = BurndownSeries(
        dates=tuple(dates),
        ideal=tuple(calculate_ideal_burndown(total_points, len(dates))),
        actual=tuple(calculate_actual_burndown(total_points, daily_burns)),
        burns=tuple(daily_burns),
        total_points=total_points,
        start_date=start_date,
        end_date=end_date,
    )

    if enable_logging:
        included = sum(1 for item in items if is_included(item, sprint_label))
        logger.info(
            f"[Phase 3] {start_date.isoformat()}..{end_date.isoformat()}: "
            f"{included}/{len(items)} items, {total_points:g} points, "
            f"burned {sum(daily_burns):g} in window"
        )

    return series
