import logging
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..core.orchestrator import BurndownOrchestrator, OrchestratorError

logger = logging.getLogger(__name__)

USAGE = "Usage: `/burndown <project-id> [end-date YYYY-MM-DD] [sprint-label]`"


@dataclass
class CommandResult:
    ok: bool
    message: str
    image_path: Optional[Path] = None


class CommandBurndownRepository:
    """``/burndown`` スラッシュコマンドの本体

    Slack からはトークンを受け取らないため、許可リストに登録された
    ボードだけがサーバートークンで生成できる。
    """

    def __init__(self, orchestrator_factory: Callable[[], BurndownOrchestrator]):
        self.orchestrator_factory = orchestrator_factory

    @staticmethod
    def parse_args(text: str):
        try:
            parts = shlex.split(text or "")
        except ValueError:
            parts = (text or "").split()
        if not parts:
            return None
        board_id = parts[0]
        end_date = parts[1] if len(parts) > 1 else None
        sprint_label = " ".join(parts[2:]) if len(parts) > 2 else None
        return board_id, end_date, sprint_label

    def execute(self, text: str) -> CommandResult:
        args = self.parse_args(text)
        if args is None:
            return CommandResult(False, USAGE)
        board_id, end_date, sprint_label = args

        orchestrator = self.orchestrator_factory()
        try:
            identifier = orchestrator.run(board_id, end_date=end_date, sprint_label=sprint_label)
        except OrchestratorError as e:
            return CommandResult(False, f"Burndown chart failed ({e.status_code}): {e.message}")

        return CommandResult(
            True,
            f"Burndown chart for `{board_id}`",
            image_path=orchestrator.store.path_for(identifier),
        )
