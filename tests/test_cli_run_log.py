from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path


def _run_cli(repo_root: Path, *args: str) -> subprocess.CompletedProcess[str]:
    env = dict(os.environ)
    env.pop("TUMBLR_ARCHIVE_DB", None)
    existing_pp = env.get("PYTHONPATH", "")
    env["PYTHONPATH"] = (
        f"{repo_root}{os.pathsep}{existing_pp}" if existing_pp else str(repo_root)
    )
    return subprocess.run(
        [sys.executable, "-m", "tumblr_archive", *args],
        cwd=repo_root,
        env=env,
        capture_output=True,
        text=True,
    )


class TestCommandWritesLog(unittest.TestCase):
    def test_missing_config_exits_with_config_error(self) -> None:
        repo_root = Path(__file__).resolve().parents[1]

        with tempfile.TemporaryDirectory() as td:
            missing_cfg = Path(td) / "missing_config.yaml"

            proc = _run_cli(repo_root, "init", "--config", str(missing_cfg))

            self.assertEqual(proc.returncode, 2, msg=proc.stderr)
            self.assertIn("Config file not found", proc.stderr)

    def test_failed_command_is_logged(self) -> None:
        repo_root = Path(__file__).resolve().parents[1]

        with tempfile.TemporaryDirectory() as td:
            log_path = Path(td) / "archive.log"
            cfg_path = Path(td) / "config.yaml"
            cfg_path.write_text(
                f"store:\n  path: {Path(td) / 'archive.sqlite'}\nlog:\n  path: {log_path}\n",
                encoding="utf-8",
            )

            proc = _run_cli(
                repo_root,
                "put",
                "--config",
                str(cfg_path),
                "--input",
                str(Path(td) / "missing.jsonl"),
            )

            self.assertEqual(proc.returncode, 1, msg=proc.stderr)
            self.assertTrue(log_path.exists())

            events: list[str] = []
            for ln in log_path.read_text(encoding="utf-8").splitlines():
                if not ln.strip():
                    continue
                obj = json.loads(ln)
                ev = obj.get("event")
                if isinstance(ev, str):
                    events.append(ev)

            self.assertIn("put_started", events)
            self.assertIn("put_failed", events)


if __name__ == "__main__":
    unittest.main()
