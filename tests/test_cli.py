import os
import time
from unittest.mock import patch

import pytest

from gh_burndown import cli


class TestGenerate:

    def test_generate_passes_arguments(self):
        with patch.object(cli, "run_burndown_generation", return_value=0) as run:
            code = cli.main([
                "generate", "--project-id", "PVT_1", "--token", "ghp_x",
                "--end-date", "2024-01-15", "--sprint-label", "sprint-1", "--tz", "Asia/Tokyo",
            ])
        assert code == 0
        run.assert_called_once_with(
            "PVT_1", token="ghp_x", end_date="2024-01-15", sprint_label="sprint-1", tz_name="Asia/Tokyo"
        )

    def test_project_id_is_required(self):
        with pytest.raises(SystemExit):
            cli.main(["generate"])

    def test_failure_exit_code(self):
        with patch.object(cli, "run_burndown_generation", return_value=1):
            assert cli.main(["generate", "--project-id", "PVT_1"]) == 1


class TestPrune:

    def test_prune_with_explicit_age(self, fake_env, temp_output_dir, capsys):
        old = temp_output_dir / "old.png"
        old.write_bytes(b"x")
        ts = time.time() - 5 * 3600
        os.utime(old, (ts, ts))
        (temp_output_dir / "new.png").write_bytes(b"x")

        with patch("gh_burndown.core.phase1_environment.ensure_env_loaded", return_value=False):
            code = cli.main(["prune", "--older-than-hours", "2"])

        assert code == 0
        assert not old.exists()
        assert (temp_output_dir / "new.png").exists()
        assert "removed 1 charts" in capsys.readouterr().out

    def test_prune_without_age(self, fake_env, temp_output_dir):
        with patch("gh_burndown.core.phase1_environment.ensure_env_loaded", return_value=False):
            assert cli.main(["prune"]) == 2

    def test_prune_uses_configured_retention(self, fake_env, temp_output_dir, monkeypatch, capsys):
        monkeypatch.setenv("CHART_RETENTION_HOURS", "1")
        old = temp_output_dir / "old.png"
        old.write_bytes(b"x")
        ts = time.time() - 3 * 3600
        os.utime(old, (ts, ts))

        with patch("gh_burndown.core.phase1_environment.ensure_env_loaded", return_value=False):
            assert cli.main(["prune"]) == 0
        assert not old.exists()
