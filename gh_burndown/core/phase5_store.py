"""
Phase 5: チャート保存
描画済み画像にランダムな ID を割り当てて出力ディレクトリに保存する。
"""

import logging
import os
import time
import uuid
from pathlib import Path
from typing import List, Optional, Set

logger = logging.getLogger(__name__)

# output directories already warned about (once per process)
_unbounded_dirs_warned: Set[Path] = set()


class StorageError(Exception):
    """チャート保存時のエラー"""
    pass


class ChartStore:
    """出力ディレクトリへのチャート保存

    保存したファイルは自動では削除されない。削除は ``prune`` を明示的に
    呼んだ場合（CHART_RETENTION_HOURS 設定時や ``gh-burndown prune``）のみ。
    """

    def __init__(self, output_dir: str, image_format: str = "png", retention_hours: Optional[float] = None):
        self.output_dir = Path(output_dir)
        self.image_format = image_format.lower()
        self.retention_hours = retention_hours
        if retention_hours is None:
            self._warn_unbounded()

    def _warn_unbounded(self) -> None:
        key = self.output_dir.resolve()
        if key in _unbounded_dirs_warned:
            return
        _unbounded_dirs_warned.add(key)
        logger.warning(
            f"No retention policy configured for {self.output_dir}; "
            "stored charts accumulate until removed externally"
        )

    def path_for(self, identifier: str) -> Path:
        return self.output_dir / f"{identifier}.{self.image_format}"

    def store(self, data: bytes) -> str:
        """
        画像を保存して ID を返す。

        一時ファイルに書き込んでからリネームするため、失敗しても
        既存ファイルや不完全なファイルは残らない。

        Raises:
            StorageError: ディレクトリ作成・書き込みに失敗した場合
        """
        identifier = str(uuid.uuid4())
        target = self.path_for(identifier)
        tmp = target.with_name(f".{target.name}.tmp")
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(data)
            os.replace(tmp, target)
        except OSError as e:
            if tmp.exists():
                tmp.unlink()
            raise StorageError(f"Failed to store chart in {self.output_dir}: {e}") from e

        logger.info(f"Burndown chart saved as {target}")
        return identifier

    def prune(self, max_age_hours: Optional[float] = None, now: Optional[float] = None) -> List[Path]:
        """
        ``max_age_hours`` より古いチャートを削除する。

        Args:
            max_age_hours: 保持時間。省略時は設定値。どちらも無ければ何もしない
            now: 現在時刻 (epoch 秒、テスト用)

        Returns:
            削除したファイルのリスト
        """
        max_age = max_age_hours if max_age_hours is not None else self.retention_hours
        if max_age is None or not self.output_dir.is_dir():
            return []

        cutoff = (now if now is not None else time.time()) - max_age * 3600
        removed: List[Path] = []
        for path in self.output_dir.glob(f"*.{self.image_format}"):
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed.append(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Could not remove {path}: {e}")

        if removed:
            logger.info(f"Pruned {len(removed)} charts older than {max_age:g}h from {self.output_dir}")
        return removed
