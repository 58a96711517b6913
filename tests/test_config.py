from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from tumblr_archive.config import DB_PATH_ENV, load_config, resolve_store_path
from tumblr_archive.errors import ConfigError


_VALID_YAML = """\
store:
  path: data/archive.sqlite
  max_params_per_query: 500
  busy_timeout_ms: 1000
  journal_mode: delete
  statement_cache_size: 64

log:
  path: data/archive.log
  overwrite: true
"""


class TestConfig(unittest.TestCase):
    def _write(self, td: str, text: str) -> Path:
        path = Path(td) / "config.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    def test_load_config_ok(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            cfg = load_config(self._write(td, _VALID_YAML))

            self.assertEqual(cfg.store.path, "data/archive.sqlite")
            self.assertEqual(cfg.store.max_params_per_query, 500)
            self.assertEqual(cfg.store.journal_mode, "DELETE")
            self.assertEqual(cfg.store.statement_cache_size, 64)
            self.assertTrue(cfg.log.overwrite)

    def test_empty_file_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            cfg = load_config(self._write(td, ""))

            self.assertEqual(cfg.store.path, "archive.sqlite")
            self.assertEqual(cfg.store.max_params_per_query, 999)
            self.assertEqual(cfg.store.journal_mode, "WAL")
            self.assertFalse(cfg.log.overwrite)

    def test_load_config_rejects_bad_values(self) -> None:
        bad = [
            _VALID_YAML.replace("max_params_per_query: 500", "max_params_per_query: 0"),
            _VALID_YAML.replace("max_params_per_query: 500", "max_params_per_query: 40000"),
            _VALID_YAML.replace("journal_mode: delete", "journal_mode: truncate"),
            _VALID_YAML.replace("path: data/archive.sqlite", "path: '  '"),
            _VALID_YAML + "extra_section: {}\n",
        ]
        with tempfile.TemporaryDirectory() as td:
            for text in bad:
                with self.subTest(text=text):
                    with self.assertRaises(ConfigError):
                        load_config(self._write(td, text))

    def test_load_config_rejects_missing_and_non_mapping(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(ConfigError):
                load_config(Path(td) / "missing.yaml")

            with self.assertRaises(ConfigError):
                load_config(self._write(td, "- a\n- b\n"))

            with self.assertRaises(ConfigError):
                load_config(self._write(td, "store: [unclosed\n"))

    def test_resolve_store_path_env_override(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            cfg = load_config(self._write(td, _VALID_YAML))

            self.assertEqual(resolve_store_path(cfg, environ={}), "data/archive.sqlite")
            self.assertEqual(
                resolve_store_path(cfg, environ={DB_PATH_ENV: "  "}), "data/archive.sqlite"
            )
            self.assertEqual(
                resolve_store_path(cfg, environ={DB_PATH_ENV: "/tmp/other.sqlite"}),
                "/tmp/other.sqlite",
            )


if __name__ == "__main__":
    unittest.main()
