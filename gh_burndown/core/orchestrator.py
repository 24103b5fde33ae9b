"""
Burndown Chart Orchestrator
Phase 1-5 を統合してバーンダウンチャート生成を実行
"""

import logging
from datetime import date
from typing import Callable, Optional

from .phase1_environment import (
    EnvironmentSetupError,
    RequestValidationError,
    build_request,
    resolve_auth,
    setup_environment,
)
from .phase2_fetch import FetchError, fetch_board_data
from .phase3_burndown import compute_burndown
from .phase4_render import RenderError, render_burndown
from .phase5_store import ChartStore, StorageError
from .types import BoardData, BurndownRequest, BurndownSeries, EnvironmentConfig

logger = logging.getLogger(__name__)


class BoardNotFoundError(Exception):
    """ボードが存在しない、またはアクセスできない"""
    pass


_STATUS_BY_ERROR = (
    (RequestValidationError, 400),
    (BoardNotFoundError, 404),
    (FetchError, 400),
    (EnvironmentSetupError, 500),
    (RenderError, 500),
    (StorageError, 500),
)


class OrchestratorError(Exception):
    """オーケストレーター実行時のエラー

    元のフェーズのエラーは ``__cause__`` に入る。
    """

    def __init__(self, message: str, status_code: int = 500, phase: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.phase = phase

    @classmethod
    def from_exception(cls, error: Exception, phase: Optional[str] = None) -> 'OrchestratorError':
        status = 500
        for error_type, code in _STATUS_BY_ERROR:
            if isinstance(error, error_type):
                status = code
                break
        return cls(str(error), status_code=status, phase=phase)


class BurndownOrchestrator:
    """バーンダウンチャート生成を統括するオーケストレーター"""

    def __init__(
        self,
        config: Optional[EnvironmentConfig] = None,
        store: Optional[ChartStore] = None,
        fetcher: Optional[Callable[..., Optional[BoardData]]] = None,
        enable_logging: bool = True,
    ):
        """
        Args:
            config: 設定（省略時は環境変数から構築）
            store: 保存先（省略時は設定の出力ディレクトリ）
            fetcher: テスト用の fetch_board_data 差し替え
            enable_logging: ログ出力を有効化するかどうか
        """
        self.config = config or setup_environment()
        self.store = store or ChartStore(
            self.config.output_dir,
            image_format=self.config.image_format,
            retention_hours=self.config.retention_hours,
        )
        self.fetcher = fetcher or fetch_board_data
        self.enable_logging = enable_logging
        self.request: Optional[BurndownRequest] = None
        self.board: Optional[BoardData] = None
        self.series: Optional[BurndownSeries] = None

    def chart_url(self, identifier: str) -> str:
        """HTTP 境界で公開する相対パス"""
        return f"/burndown/{identifier}.{self.store.image_format}"

    def run(
        self,
        board_id: Optional[str],
        token: Optional[str] = None,
        end_date: Optional[str] = None,
        sprint_label: Optional[str] = None,
        tz_name: Optional[str] = None,
        today: Optional[date] = None,
    ) -> str:
        """
        全フェーズを実行してチャートを生成

        Returns:
            str: 保存したチャートの ID

        Raises:
            OrchestratorError: いずれかのフェーズで失敗した場合
        """
        phase = "validate"
        try:
            # Phase 1: リクエスト検証
            auth = resolve_auth(self.config, board_id, token)
            self.request = build_request(
                self.config,
                board_id or "",
                end_date=end_date,
                sprint_label=sprint_label,
                tz_name=tz_name,
            )
            if self.enable_logging:
                logger.info(f"🚀 Generating burndown chart with end date: {self.request.end_date.isoformat()}")

            # Phase 2: ボード取得
            phase = "fetch"
            if self.enable_logging:
                logger.info("🔍 Phase 2: Fetching project items")
            self.board = self.fetcher(
                auth,
                self.request.board_id,
                max_pages=self.config.github_max_pages,
                estimate_field=self.config.estimate_field_name,
                enable_logging=self.enable_logging,
            )
            if self.board is None:
                raise BoardNotFoundError("Failed to fetch project data or project not found.")

            # Phase 3: 計算
            phase = "calculate"
            if self.enable_logging:
                logger.info("📈 Phase 3: Calculating burndown data")
            self.series = compute_burndown(
                self.board.items,
                self.request.end_date,
                sprint_label=self.request.sprint_label,
                tz=self.request.timezone,
                lookback_days=self.config.lookback_days,
                enable_logging=self.enable_logging,
            )

            # Phase 4: 描画
            phase = "render"
            if self.enable_logging:
                logger.info("🎨 Phase 4: Rendering chart")
            image_bytes = render_burndown(
                self.series,
                self.board.title,
                today=today,
                tz=self.request.timezone,
                image_format=self.store.image_format,
                enable_logging=self.enable_logging,
            )

            # Phase 5: 保存
            phase = "store"
            identifier = self.store.store(image_bytes)
            if self.config.retention_hours is not None:
                self.store.prune()

            if self.enable_logging:
                logger.info(f"✅ Burndown chart generated: {self.store.path_for(identifier)}")
            return identifier

        except OrchestratorError:
            raise
        except Exception as e:
            if self.enable_logging:
                logger.error(f"❌ Burndown generation failed during {phase}: {e}", exc_info=True)
            raise OrchestratorError.from_exception(e, phase=phase) from e


def run_burndown_generation(
    board_id: str,
    token: Optional[str] = None,
    end_date: Optional[str] = None,
    sprint_label: Optional[str] = None,
    tz_name: Optional[str] = None,
    enable_logging: bool = True,
) -> int:
    """
    チャート生成を実行（エラーハンドリング付き）

    Returns:
        int: 終了コード（0=成功、1=失敗）
    """
    try:
        orchestrator = BurndownOrchestrator(enable_logging=enable_logging)
        identifier = orchestrator.run(
            board_id,
            token=token,
            end_date=end_date,
            sprint_label=sprint_label,
            tz_name=tz_name,
        )
        print(str(orchestrator.store.path_for(identifier)))
        return 0

    except OrchestratorError as e:
        logger.error(f"❌ Burndown generation failed: {e}")
        return 1

    except EnvironmentSetupError as e:
        logger.error(f"❌ Environment setup failed: {e}")
        return 1
