"""Type definitions for burndown chart generation."""
import os
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (ValueError, TypeError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (ValueError, TypeError):
        return default


@dataclass
class EnvironmentConfig:
    """環境設定を保持するデータクラス"""
    output_dir: str = "./burndown"
    image_format: str = "png"
    lookback_days: int = 14
    timezone: str = "UTC"
    strict_date_input: bool = True

    # GitHub 設定
    github_token: Optional[str] = None
    project_whitelist: List[str] = field(default_factory=list)
    github_api_url: str = "https://api.github.com/graphql"
    github_timeout: float = 30.0
    github_max_pages: int = 1
    estimate_field_name: str = "Estimate"

    # 保持ポリシー (None = 無期限)
    retention_hours: Optional[float] = None

    # Web / Slack 設定
    frontend_dist: str = "./frontend/dist"
    slack_bot_token: Optional[str] = None
    slack_signing_secret: Optional[str] = None

    # ログ設定
    burndown_log: bool = True

    @classmethod
    def from_env(cls) -> 'EnvironmentConfig':
        """環境変数から設定を読み込む

        不正な数値はデフォルト値にフォールバックする。
        """
        whitelist_raw = os.getenv("ENV_PROJECT_WHITE_LIST", "")
        whitelist = [s.strip() for s in whitelist_raw.split(",") if s.strip()]

        retention_raw = os.getenv("CHART_RETENTION_HOURS")
        try:
            retention_hours = float(retention_raw) if retention_raw else None
        except (ValueError, TypeError):
            retention_hours = None
        if retention_hours is not None and retention_hours <= 0:
            retention_hours = None

        lookback_days = _env_int("BURNDOWN_LOOKBACK_DAYS", 14)
        if lookback_days < 0:
            lookback_days = 14

        return cls(
            output_dir=os.getenv("OUTPUT_DIR") or "./burndown",
            image_format=(os.getenv("IMAGE_FORMAT") or "png").lower(),
            lookback_days=lookback_days,
            timezone=os.getenv("BURNDOWN_TZ") or "UTC",
            strict_date_input=_env_flag("STRICT_DATE_INPUT", "1"),
            github_token=os.getenv("ENV_GITHUB_TOKEN") or None,
            project_whitelist=whitelist,
            github_api_url=os.getenv("GITHUB_API_URL") or "https://api.github.com/graphql",
            github_timeout=_env_float("GITHUB_TIMEOUT", 30.0),
            github_max_pages=max(1, _env_int("GITHUB_MAX_PAGES", 1)),
            estimate_field_name=os.getenv("ESTIMATE_FIELD_NAME") or "Estimate",
            retention_hours=retention_hours,
            frontend_dist=os.getenv("FRONTEND_DIST") or "./frontend/dist",
            slack_bot_token=os.getenv("SLACK_BOT_TOKEN") or None,
            slack_signing_secret=os.getenv("SLACK_SIGNING_SECRET") or None,
            burndown_log=_env_flag("BURNDOWN_LOG", "1"),
        )

    @property
    def slack_enabled(self) -> bool:
        return bool(self.slack_bot_token and self.slack_signing_secret)


@dataclass
class AuthContext:
    """認証情報を保持"""
    token: str
    api_url: str = "https://api.github.com/graphql"
    timeout: float = 30.0

    def __repr__(self) -> str:
        """セキュアな文字列表現（トークンをマスク）"""
        return f"AuthContext(api_url={self.api_url}, token=***)"


@dataclass(frozen=True)
class BurndownRequest:
    """1 回のチャート生成リクエスト（検証済み）"""
    board_id: str
    end_date: date
    timezone: Any
    sprint_label: Optional[str] = None


class ContentType(str, Enum):
    ISSUE = "ISSUE"
    PULL_REQUEST = "PULL_REQUEST"
    DRAFT_ISSUE = "DRAFT_ISSUE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Optional[str]) -> 'ContentType':
        try:
            return cls(str(value or "").upper())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class BoardItem:
    """ボード上の 1 アイテム

    Issue / PullRequest / DraftIssue の共通部分を持ち、ラベルと本文は
    content_type に応じて空になる。
    """
    id: str
    created_at: Optional[datetime]
    closed_at: Optional[datetime] = None
    estimate_points: float = 0.0
    labels: FrozenSet[str] = frozenset()
    body_text: Optional[str] = None
    content_type: ContentType = ContentType.UNKNOWN
    title: Optional[str] = None

    @property
    def has_labels(self) -> bool:
        """ラベルを持ち得るコンテンツか（ドラフトは持たない）"""
        return self.content_type in (ContentType.ISSUE, ContentType.PULL_REQUEST)


@dataclass
class BoardData:
    """取得したボードの集約"""
    board_id: str
    title: str
    items: List[BoardItem] = field(default_factory=list)
    total_count: Optional[int] = None

    @property
    def truncated(self) -> bool:
        """取得件数がボードの総件数より少ないか"""
        return self.total_count is not None and self.total_count > len(self.items)

    def to_dict(self) -> Dict[str, Any]:
        """ログ・デバッグ用の辞書変換"""
        return {
            "boardId": self.board_id,
            "title": self.title,
            "items": len(self.items),
            "totalCount": self.total_count,
            "truncated": self.truncated,
        }


@dataclass(frozen=True)
class BurndownSeries:
    """バーンダウン計算結果"""
    dates: Tuple[date, ...]
    ideal: Tuple[float, ...]
    actual: Tuple[float, ...]
    burns: Tuple[float, ...]
    total_points: float
    start_date: date
    end_date: date

    @property
    def num_days(self) -> int:
        return len(self.dates)

    def to_dict(self) -> Dict[str, Any]:
        """辞書形式に変換"""
        return {
            "dates": [d.isoformat() for d in self.dates],
            "ideal": list(self.ideal),
            "actual": list(self.actual),
            "burns": list(self.burns),
            "totalPoints": self.total_points,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
        }
