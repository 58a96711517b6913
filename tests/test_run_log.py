from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from typing import Any

from tumblr_archive.errors import StorageError
from tumblr_archive.post import Post, QuoteContent, TextContent
from tumblr_archive.run_log import RunLogger
from tumblr_archive.storage import SQLitePostStore


def _read_records(path: Path) -> list[dict[str, Any]]:
    return [
        json.loads(ln)
        for ln in path.read_text(encoding="utf-8").splitlines()
        if ln.strip()
    ]


def _post(post_id: int, content: Any, *, blog: Any = "foo") -> Post:
    return Post(
        id=post_id,
        blog_name=blog,
        post_url=f"http://foo.tumblr.com/post/{post_id}",
        posted_ms=1000,
        retrieved_ms=2000,
        content=content,
        tags=("a",),
    )


class TestRunLogger(unittest.TestCase):
    def test_records_are_json_lines(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "logs" / "archive.log"
            with RunLogger.open(path, session_id="s1") as log:
                log.info("hello", post_id=7, count=2)
                log.warning("careful")
                log.bind_store("db.sqlite")
                log.exception("boom", exc=ValueError("bad"))

            records = _read_records(path)
            self.assertEqual([r["event"] for r in records], ["hello", "careful", "boom"])
            self.assertEqual({r["session_id"] for r in records}, {"s1"})
            self.assertEqual(records[0]["post_id"], 7)
            self.assertEqual(records[0]["data"], {"count": 2})
            self.assertNotIn("data", records[1])
            self.assertNotIn("store", records[1])
            self.assertEqual(records[2]["store"], "db.sqlite")
            self.assertEqual(records[2]["level"], "ERROR")
            self.assertEqual(records[2]["data"]["error"]["type"], "ValueError")

    def test_appends_unless_overwrite(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "archive.log"
            with RunLogger.open(path) as log:
                log.info("first")
            with RunLogger.open(path) as log:
                log.info("second")
            self.assertEqual([r["event"] for r in _read_records(path)], ["first", "second"])

            with RunLogger.open(path, overwrite=True) as log:
                log.info("third")
            self.assertEqual([r["event"] for r in _read_records(path)], ["third"])


class TestStoreLogging(unittest.TestCase):
    def test_store_operations_are_logged(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            log_path = Path(td) / "archive.log"
            db_path = Path(td) / "archive.sqlite"

            with RunLogger.open(log_path) as log:
                with SQLitePostStore.open(db_path, logger=log) as store:
                    store.put(_post(1, TextContent(title="t", body="b")))
                    store.put([_post(2, QuoteContent(text="q", source="s")), _post(3, TextContent("x", "y"))])
                    store.put([])
                    store.delete(1)

            records = _read_records(log_path)
            events = [r["event"] for r in records]
            self.assertEqual(
                events, ["store_opened", "posts_put", "posts_put", "posts_deleted"]
            )
            self.assertTrue(all(r["store"] == str(db_path) for r in records))

            single, batch = records[1], records[2]
            self.assertEqual(single["post_id"], 1)
            self.assertEqual(single["data"]["count"], 1)
            self.assertNotIn("post_id", batch)
            self.assertEqual(batch["data"]["count"], 2)
            self.assertEqual(batch["data"]["by_type"], {"QUOTE": 1, "TEXT": 1})

            deleted = records[3]
            self.assertEqual(deleted["post_id"], 1)
            self.assertEqual(deleted["data"]["removed"], 1)

    def test_failed_put_logs_rollback(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            log_path = Path(td) / "archive.log"

            with RunLogger.open(log_path) as log:
                with SQLitePostStore.open(":memory:", logger=log) as store:
                    with self.assertRaises(StorageError):
                        store.put(_post(1, TextContent("t", "b"), blog=None))

            records = _read_records(log_path)
            rolled_back = [r for r in records if r["event"] == "transaction_rolled_back"]
            self.assertEqual(len(rolled_back), 1)
            self.assertEqual(rolled_back[0]["data"]["operation"], "put")
            self.assertFalse(rolled_back[0]["data"]["rollback_failed"])
            self.assertNotIn("posts_put", [r["event"] for r in records])


if __name__ == "__main__":
    unittest.main()
