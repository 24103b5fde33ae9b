"""Phase 1: Environment setup and request validation"""
import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..lib.dotenv_loader import ensure_env_loaded
from .types import AuthContext, BurndownRequest, EnvironmentConfig

logger = logging.getLogger(__name__)


class EnvironmentSetupError(Exception):
    """環境設定に関するエラー"""
    pass


class RequestValidationError(Exception):
    """リクエストパラメータが不正な場合のエラー"""
    pass


def setup_environment() -> EnvironmentConfig:
    """
    Phase 1: .env の読み込みと設定の構築

    Returns:
        EnvironmentConfig: 設定

    Raises:
        EnvironmentSetupError: 設定値が利用できない場合
    """
    loaded = ensure_env_loaded()
    config = EnvironmentConfig.from_env()

    if config.image_format not in ("png", "jpeg", "webp"):
        raise EnvironmentSetupError(f"Unsupported IMAGE_FORMAT: {config.image_format}")

    if config.burndown_log:
        if loaded:
            logger.info("[Phase 1] .env files loaded")
        logger.info(f"[Phase 1] Output directory: {config.output_dir}")
        logger.info(f"[Phase 1] Lookback days: {config.lookback_days}, timezone: {config.timezone}")
        logger.info(f"[Phase 1] Strict date input: {config.strict_date_input}")

    return config


def resolve_auth(config: EnvironmentConfig, board_id: Optional[str], token: Optional[str]) -> AuthContext:
    """
    リクエストのトークンを決定する。

    トークン未指定でも、ボードが許可リストにありサーバートークンが
    設定されていればそれを使う。

    Raises:
        RequestValidationError: トークンまたはボード ID が無い場合
    """
    board_id = (board_id or "").strip()
    token = (token or "").strip() or None

    if board_id and not token and board_id in config.project_whitelist and config.github_token:
        logger.info(f"Using server token for allow-listed board {board_id}")
        token = config.github_token

    if not token or not board_id:
        raise RequestValidationError("Please provide token and project ID")

    return AuthContext(token=token, api_url=config.github_api_url, timeout=config.github_timeout)


def resolve_timezone(name: Optional[str], default: str = "UTC", strict: bool = True) -> tzinfo:
    """タイムゾーン名を tzinfo に変換する"""
    candidate = (name or "").strip() or default
    try:
        return ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError):
        if strict:
            raise RequestValidationError(f"Unknown timezone: {candidate}")
        logger.warning(f"Unknown timezone {candidate!r}; falling back to {default}")

    try:
        return ZoneInfo(default)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Default timezone {default!r} is invalid; using UTC")
        return timezone.utc


def today_in(tz: tzinfo) -> date:
    return datetime.now(tz).date()


def parse_end_date(raw: Optional[str], tz: tzinfo, strict: bool = True) -> date:
    """
    終了日をパースする。

    受け付ける形式は ``YYYY-MM-DD`` と ISO 8601 日時（``Z`` 可）。
    日時にオフセットがある場合は ``tz`` に変換した日付を使う。
    未指定なら今日。

    Raises:
        RequestValidationError: strict かつ形式が不正な場合
    """
    text = (raw or "").strip()
    if not text:
        return today_in(tz)

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        if strict:
            raise RequestValidationError(f"Invalid end-date: {text!r} (expected YYYY-MM-DD)")
        logger.warning(f"Invalid end-date {text!r}; falling back to today")
        return today_in(tz)

    if dt.tzinfo is not None:
        dt = dt.astimezone(tz)
    return dt.date()


def build_request(
    config: EnvironmentConfig,
    board_id: str,
    end_date: Optional[str] = None,
    sprint_label: Optional[str] = None,
    tz_name: Optional[str] = None,
) -> BurndownRequest:
    """
    生のパラメータから検証済みリクエストを構築する。

    Raises:
        RequestValidationError: strict モードで日付やタイムゾーンが不正な場合
    """
    tz = resolve_timezone(tz_name, default=config.timezone, strict=config.strict_date_input)
    parsed_end = parse_end_date(end_date, tz, strict=config.strict_date_input)
    label = (sprint_label or "").strip() or None
    return BurndownRequest(
        board_id=board_id.strip(),
        end_date=parsed_end,
        timezone=tz,
        sprint_label=label,
    )
