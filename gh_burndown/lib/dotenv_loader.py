"""Load ``.env`` settings for the burndown server and CLI via python-dotenv."""
from __future__ import annotations

import os
import sys
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List

from dotenv import load_dotenv


def _candidate_paths() -> Iterable[Path]:
    """``.env`` files to read, first match wins per variable.

    The working directory comes first so a deployment can keep its
    settings next to ``OUTPUT_DIR``; the source checkout root is the
    fallback for ``pip install -e .`` development.
    """
    checkout_root = Path(__file__).resolve().parents[2]
    paths: List[Path] = [Path.cwd() / ".env"]
    if checkout_root / ".env" not in paths:
        paths.append(checkout_root / ".env")
    return paths


def _running_pytest() -> bool:
    return "PYTEST_CURRENT_TEST" in os.environ or "pytest" in sys.modules


@lru_cache(maxsize=1)
def ensure_env_loaded(override: bool = False) -> bool:
    """Read ``.env`` files into ``os.environ`` once per process.

    - GitHub / Slack トークンはシェルの値を優先する (override=False)
    - テスト中は読まない。開発者の ``ENV_GITHUB_TOKEN`` で GitHub に
      アクセスしてしまうのを避けるため

    Returns:
        bool: 1 つ以上の ``.env`` を読み込んだか
    """
    if _running_pytest():
        return False

    loaded = False
    for path in _candidate_paths():
        if path.is_file():
            load_dotenv(path, override=override)
            loaded = True
    return loaded
