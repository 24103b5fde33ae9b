"""
Phase 4: チャート描画
BurndownSeries を 800x600 の折れ線グラフ画像に描画する。
"""

import io
import logging
import math
import os
from datetime import date, timezone, tzinfo
from typing import List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from .phase1_environment import today_in
from .types import BurndownSeries

logger = logging.getLogger(__name__)

WIDTH, HEIGHT = 800, 600

COL_BG = (255, 255, 255)
COL_TEXT = (40, 40, 40)
COL_AXIS = (80, 80, 80)
COL_GRID = (225, 225, 225)
COL_IDEAL = (54, 162, 235)
COL_ACTUAL = (255, 99, 132)
COL_TODAY = (120, 120, 120)

# plot area (left, top, right, bottom)
PLOT_BOX = (90, 90, 770, 440)

PIL_FORMATS = {"png": "PNG", "jpeg": "JPEG", "jpg": "JPEG", "webp": "WEBP"}


class RenderError(Exception):
    """チャート描画時のエラー"""
    pass


def try_load_font(size: int) -> ImageFont.ImageFont:
    candidates: List[str] = []
    if os.name == "nt":
        candidates = [
            r"C:\Windows\Fonts\segoeui.ttf",
            r"C:\Windows\Fonts\arial.ttf",
        ]
    else:
        candidates = [
            "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
            "/usr/share/fonts/dejavu/DejaVuSans.ttf",
            "/System/Library/Fonts/Helvetica.ttc",
            "/Library/Fonts/Arial.ttf",
        ]
    # Generic fallbacks
    candidates += ["DejaVuSans.ttf", "arial.ttf"]

    for path in candidates:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            continue
    return ImageFont.load_default()


def format_display_date(d: date) -> str:
    """M/D 形式（ゼロ埋めなし）"""
    return f"{d.month}/{d.day}"


def find_date_index(dates: Sequence[date], target: date) -> Optional[int]:
    try:
        return list(dates).index(target)
    except ValueError:
        return None


def truncate_actual(series: BurndownSeries, today: date) -> Tuple[List[Optional[float]], Optional[int]]:
    """
    今日より後の実績値を欠損 (None) に置き換える。

    今日が期間内かつ終了日より前の場合のみ切り詰める。理想線は対象外。

    Returns:
        (実績値リスト, 今日のインデックス or None)
    """
    values: List[Optional[float]] = list(series.actual)
    today_index = find_date_index(series.dates, today)
    if today_index is not None and today < series.end_date:
        for i in range(today_index + 1, len(values)):
            values[i] = None
    return values, today_index


def y_axis_max(total_points: float) -> int:
    """10% の余白を持たせた y 軸の上限"""
    # round first so float noise (10 * 1.1 == 11.000000000000002) does not add a step
    return int(math.ceil(round(total_points * 1.1, 9)))


def _text_wh(g: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont) -> Tuple[int, int]:
    x0, y0, x1, y1 = g.textbbox((0, 0), text, font=font)
    return x1 - x0, y1 - y0


def _draw_rotated_text(img: Image.Image, text: str, anchor_xy: Tuple[int, int], font: ImageFont.ImageFont,
                       angle: float, fill=COL_TEXT, align_right: bool = False) -> None:
    probe = ImageDraw.Draw(img)
    tw, th = _text_wh(probe, text, font)
    tile = Image.new("RGBA", (tw + 4, th + 6), (255, 255, 255, 0))
    ImageDraw.Draw(tile).text((2, 0), text, font=font, fill=fill + (255,))
    rotated = tile.rotate(angle, expand=True, resample=Image.Resampling.BICUBIC)
    x, y = anchor_xy
    if align_right:
        x -= rotated.width
    img.paste(rotated, (int(x), int(y)), rotated)


def _draw_dashed_line(g: ImageDraw.ImageDraw, p0: Tuple[float, float], p1: Tuple[float, float],
                      fill, width: int = 2, dash: int = 6, gap: int = 5) -> None:
    x0, y0 = p0
    x1, y1 = p1
    length = math.hypot(x1 - x0, y1 - y0)
    if length == 0:
        return
    dx, dy = (x1 - x0) / length, (y1 - y0) / length
    pos = 0.0
    while pos < length:
        end = min(pos + dash, length)
        g.line([(x0 + dx * pos, y0 + dy * pos), (x0 + dx * end, y0 + dy * end)], fill=fill, width=width)
        pos = end + gap


def _draw_chart(series: BurndownSeries, title: str, actual: List[Optional[float]],
                today_index: Optional[int]) -> Image.Image:
    img = Image.new("RGB", (WIDTH, HEIGHT), COL_BG)
    g = ImageDraw.Draw(img)

    font_title = try_load_font(18)
    font_md = try_load_font(14)
    font_sm = try_load_font(12)

    # Title / subtitle
    title_txt = f"Burndown Chart - {title}" if title else "Burndown Chart"
    tw, th = _text_wh(g, title_txt, font_title)
    g.text(((WIDTH - tw) // 2, 14), title_txt, font=font_title, fill=COL_TEXT)
    sub_txt = f"{series.start_date.isoformat()} to {series.end_date.isoformat()}"
    sw, _ = _text_wh(g, sub_txt, font_md)
    g.text(((WIDTH - sw) // 2, 14 + th + 14), sub_txt, font=font_md, fill=COL_TEXT)

    px0, py0, px1, py1 = PLOT_BOX
    ymax = y_axis_max(series.total_points)
    scale_max = max(ymax, 1)
    n = len(series.dates)

    def x_at(i: int) -> float:
        if n <= 1:
            return (px0 + px1) / 2
        return px0 + (px1 - px0) * i / (n - 1)

    def y_at(v: float) -> float:
        y = py1 - (py1 - py0) * (v / scale_max)
        # 範囲外の値はプロット領域の端に寄せる
        return min(max(y, py0), py1)

    # grid + y ticks
    steps = min(5, scale_max) or 1
    for k in range(steps + 1):
        val = scale_max * k / steps
        y = y_at(val)
        g.line([(px0, y), (px1, y)], fill=COL_GRID, width=1)
        label = f"{val:g}" if val != int(val) else str(int(val))
        lw, lh = _text_wh(g, label, font_sm)
        g.text((px0 - 8 - lw, y - lh / 2 - 2), label, font=font_sm, fill=COL_TEXT)

    # axes
    g.line([(px0, py0), (px0, py1)], fill=COL_AXIS, width=1)
    g.line([(px0, py1), (px1, py1)], fill=COL_AXIS, width=1)

    # x tick labels (rotated)
    for i, d in enumerate(series.dates):
        x = x_at(i)
        g.line([(x, py1), (x, py1 + 4)], fill=COL_AXIS, width=1)
        _draw_rotated_text(img, format_display_date(d), (x + 4, py1 + 6), font_sm, 45, align_right=True)

    # axis titles
    xw, _ = _text_wh(g, "Date", font_md)
    g.text(((px0 + px1 - xw) / 2, py1 + 52), "Date", font=font_md, fill=COL_TEXT)
    ylabel_w, _ = _text_wh(g, "Remaining Story Points", font_md)
    _draw_rotated_text(img, "Remaining Story Points", (14, (py0 + py1 - ylabel_w) / 2), font_md, 90)

    # current date marker
    if today_index is not None:
        tx = x_at(today_index)
        _draw_dashed_line(g, (tx, py0), (tx, py1), fill=COL_TODAY, width=1, dash=4, gap=4)
        lbl = "Current Date"
        lw, lh = _text_wh(g, lbl, font_sm)
        lx = min(max(tx - lw / 2, px0), px1 - lw)
        g.text((lx, py0 - lh - 6), lbl, font=font_sm, fill=COL_TODAY)

    # ideal (dashed)
    ideal_pts = [(x_at(i), y_at(v)) for i, v in enumerate(series.ideal)]
    for i in range(1, len(ideal_pts)):
        _draw_dashed_line(g, ideal_pts[i - 1], ideal_pts[i], fill=COL_IDEAL, width=2)

    # actual (solid, stops at the first missing value)
    prev: Optional[Tuple[float, float]] = None
    for i, v in enumerate(actual):
        if v is None:
            prev = None
            continue
        pt = (x_at(i), y_at(v))
        if prev is not None:
            g.line([prev, pt], fill=COL_ACTUAL, width=3)
        g.ellipse([pt[0] - 3, pt[1] - 3, pt[0] + 3, pt[1] + 3], fill=COL_ACTUAL)
        prev = pt

    # legend below the plot
    entries = [("Ideal Burndown", COL_IDEAL, True), ("Actual Burndown", COL_ACTUAL, False)]
    sample_w = 36
    widths = [sample_w + 8 + _text_wh(g, name, font_sm)[0] for name, _, _ in entries]
    total_w = sum(widths) + 30 * (len(entries) - 1)
    lx = (WIDTH - total_w) / 2
    ly = py1 + 90
    for (name, color, dashed), w in zip(entries, widths):
        if dashed:
            _draw_dashed_line(g, (lx, ly + 7), (lx + sample_w, ly + 7), fill=color, width=2)
        else:
            g.line([(lx, ly + 7), (lx + sample_w, ly + 7)], fill=color, width=3)
        g.text((lx + sample_w + 8, ly), name, font=font_sm, fill=COL_TEXT)
        lx += w + 30

    return img


def render_burndown(
    series: BurndownSeries,
    title: str,
    today: Optional[date] = None,
    tz: tzinfo = timezone.utc,
    image_format: str = "png",
    enable_logging: bool = False,
) -> bytes:
    """
    Phase 4: バーンダウンチャート画像を生成する。

    Args:
        series: 計算済みの系列
        title: ボードのタイトル
        today: 現在日（省略時は tz での今日）
        tz: 今日の判定に使うタイムゾーン
        image_format: 出力形式（png / jpeg / webp）
        enable_logging: ログ出力を有効化するかどうか

    Returns:
        bytes: 画像データ

    Raises:
        RenderError: 描画に失敗した場合
    """
    pil_format = PIL_FORMATS.get(image_format.lower())
    if pil_format is None:
        raise RenderError(f"Unsupported image format: {image_format}")

    if today is None:
        today = today_in(tz)

    try:
        actual, today_index = truncate_actual(series, today)
        if enable_logging:
            shown = sum(1 for v in actual if v is not None)
            logger.info(f"[Phase 4] Rendering {series.num_days} days ({shown} actual points), today index={today_index}")

        img = _draw_chart(series, title, actual, today_index)

        buf = io.BytesIO()
        img.save(buf, format=pil_format)
        return buf.getvalue()
    except Exception as e:
        raise RenderError(f"Failed to render burndown chart: {e}") from e
