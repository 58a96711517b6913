from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from tumblr_archive.errors import PostFormatError
from tumblr_archive.post import (
    ChatContent,
    Dialogue,
    Photo,
    PhotoContent,
    PhotoSize,
    Post,
    PostType,
)
from tumblr_archive.post_schema import (
    post_from_json,
    post_to_dict,
    post_to_json,
    read_posts_jsonl,
    write_posts_jsonl,
)

_PHOTO_JSON = """
{
  "type": "photo",
  "id": 9001,
  "blog_name": "foo.tumblr.com",
  "post_url": "http://foo.tumblr.com/post/9001",
  "posted_ms": 1700000000000,
  "retrieved_ms": 1700000005000,
  "tags": ["cats", "cute"],
  "caption": "two cats",
  "width": 800,
  "photos": [
    {"caption": "left", "sizes": [{"width": 800, "height": 600, "url": "https://x/1"}]},
    {"caption": "right"}
  ]
}
"""


class TestPostSchema(unittest.TestCase):
    def test_parses_photo_record(self) -> None:
        post = post_from_json(_PHOTO_JSON)

        self.assertEqual(post.type, PostType.PHOTO)
        self.assertEqual(post.tags, ("cats", "cute"))
        self.assertEqual(
            post.content,
            PhotoContent(
                caption="two cats",
                width=800,
                height=None,
                photos=(
                    Photo(caption="left", sizes=(PhotoSize(width=800, height=600, url="https://x/1"),)),
                    Photo(caption="right"),
                ),
            ),
        )

    def test_dict_form_matches_wire_format(self) -> None:
        post = Post(
            id=5,
            blog_name="b",
            post_url="u",
            posted_ms=1,
            retrieved_ms=2,
            content=ChatContent(
                title="t",
                body="b",
                dialogue=[Dialogue(name="a", label="a:", phrase="hi")],
            ),
            tags=("x",),
        )
        data = post_to_dict(post)

        self.assertEqual(data["type"], "chat")
        self.assertEqual(data["dialogue"], ({"name": "a", "label": "a:", "phrase": "hi"},))
        self.assertEqual(post_from_json(post_to_json(post)), post)

    def test_rejects_unknown_type_and_missing_fields(self) -> None:
        with self.assertRaises(PostFormatError):
            post_from_json('{"type": "gif", "id": 1}')

        record = json.loads(_PHOTO_JSON)
        del record["caption"]
        with self.assertRaises(PostFormatError) as ctx:
            post_from_json(record)
        self.assertIn("caption", str(ctx.exception))

    def test_rejects_out_of_range_id(self) -> None:
        record = json.loads(_PHOTO_JSON)
        record["id"] = 2**63
        with self.assertRaises(PostFormatError):
            post_from_json(record)

    def test_jsonl_file_round_trip_reports_line(self) -> None:
        post = post_from_json(_PHOTO_JSON)
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "posts.jsonl"
            self.assertEqual(write_posts_jsonl(path, [post, post]), 2)
            self.assertEqual(list(read_posts_jsonl(path)), [post, post])

            with path.open("a", encoding="utf-8") as fp:
                fp.write("\n{\"type\": \"text\"}\n")

            with self.assertRaises(PostFormatError) as ctx:
                list(read_posts_jsonl(path))
            self.assertIn(":4:", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
