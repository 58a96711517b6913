from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from .config import load_config, resolve_store_path
from .config_schema import AppConfig
from .errors import ConfigError, InvariantViolation, PostFormatError, StorageError
from .post_schema import post_to_json, read_posts_jsonl, write_posts_jsonl
from .run_log import RunLogger
from .storage import SQLitePostStore


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tumblr_archive")

    subparsers = parser.add_subparsers(dest="command", required=True)

    init = subparsers.add_parser("init", help="Create the archive database if needed.")
    _add_config_arg(init)
    init.set_defaults(_handler=_cmd_init)

    put = subparsers.add_parser(
        "put",
        help="Insert or replace posts from a JSON Lines file.",
    )
    _add_config_arg(put)
    put.add_argument("--input", required=True, help="JSONL file, one post per line.")
    put.set_defaults(_handler=_cmd_put)

    get = subparsers.add_parser("get", help="Print one post as JSON.")
    _add_config_arg(get)
    get.add_argument("--id", required=True, type=int, help="Post id.")
    get.set_defaults(_handler=_cmd_get)

    dump = subparsers.add_parser("dump", help="Write every post as JSON Lines.")
    _add_config_arg(dump)
    dump.add_argument("--out", help="Output file (default: stdout).")
    dump.set_defaults(_handler=_cmd_dump)

    delete = subparsers.add_parser("delete", help="Delete one post.")
    _add_config_arg(delete)
    delete.add_argument("--id", required=True, type=int, help="Post id.")
    delete.set_defaults(_handler=_cmd_delete)

    return parser


def _add_config_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        required=True,
        help="Path to YAML config file.",
    )


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _open_store(cfg: AppConfig, log: RunLogger) -> SQLitePostStore:
    return SQLitePostStore.open(resolve_store_path(cfg), config=cfg.store, logger=log)


def _cmd_init(cfg: AppConfig, log: RunLogger, args: argparse.Namespace) -> int:
    with _open_store(cfg, log) as store:
        print(f"store={resolve_store_path(cfg)}")
        print(f"posts={store.post_count()}")
        print(f"tags={store.tag_count()}")
    return 0


def _cmd_put(cfg: AppConfig, log: RunLogger, args: argparse.Namespace) -> int:
    posts = list(read_posts_jsonl(args.input))
    with _open_store(cfg, log) as store:
        store.put(posts)
        print(f"put={len(posts)}")
        print(f"posts={store.post_count()}")
    return 0


def _cmd_get(cfg: AppConfig, log: RunLogger, args: argparse.Namespace) -> int:
    with _open_store(cfg, log) as store:
        post = store.get(args.id)

    if post is None:
        _eprint(f"Post not found: {args.id}")
        return 1

    print(post_to_json(post))
    return 0


def _cmd_dump(cfg: AppConfig, log: RunLogger, args: argparse.Namespace) -> int:
    with _open_store(cfg, log) as store:
        posts = sorted(store.get_all(), key=lambda p: p.id)

    if args.out:
        count = write_posts_jsonl(args.out, posts)
        log.info("dump_written", path=str(args.out), count=count)
        print(f"dumped={count}")
    else:
        for post in posts:
            print(post_to_json(post))
    return 0


def _cmd_delete(cfg: AppConfig, log: RunLogger, args: argparse.Namespace) -> int:
    with _open_store(cfg, log) as store:
        removed = store.delete_many([args.id])
    print(f"deleted={removed}")
    return 0


def _run(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    command = str(args.command)

    with RunLogger.open(Path(cfg.log.path), overwrite=cfg.log.overwrite) as log:
        log.info(f"{command}_started", config_path=str(args.config))
        try:
            handler = getattr(args, "_handler")
            return int(handler(cfg, log, args))
        except Exception as e:
            log.exception(f"{command}_failed", exc=e)
            raise


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        return _run(args)
    except ConfigError as e:
        _eprint(str(e))
        return 2
    except (StorageError, PostFormatError) as e:
        _eprint(str(e))
        return 3
    except InvariantViolation as e:
        _eprint(f"Archive is in an impossible state: {e}")
        return 4
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
