#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Chat backend load-test toolkit.

Subcommands:
- image:   synthetic WebP files pushed towards a random size in [min, max] KB
- tokens:  log a slice of the account sheet in and dump uid/token pairs
- friends: fan friend requests out from the first N accounts to everyone
- scripts: per-account WuKongIM chat scripts plus a pm2 ecosystem file
- upload:  push a file through the backend's presigned upload flow

Settings come from an optional YAML/JSON config (--config); the backend
URLs can be overridden with CHATLOAD_BASE_URL / CHATLOAD_WS_URL (a .env
file is honoured).

Dependencies: numpy, Pillow, requests, PyYAML, python-dotenv, rich, openpyxl
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

import yaml
from dotenv import load_dotenv

from chatload.accounts import AccountSheetError, read_credentials
from chatload.api import ChatApiClient, ChatApiError
from chatload.batch import (
    batch_add_friends,
    batch_add_friends_concurrent,
    batch_get_user_info,
    batch_login,
    fetch_user_tokens,
)
from chatload.config import LoadTestConfig, load_config
from chatload.image import GenerationError, GenerationRequest, GeneratorOptions, generate_many
from chatload.io_utils import (
    artifact_filename,
    default_token_path,
    generate_run_id,
    write_artifact,
    write_token_file,
)
from chatload.logging_utils import RunLogger, configure_logging, create_logger
from chatload.models import Credentials
from chatload.scripts import generate_chat_scripts, write_ecosystem_config

logger = logging.getLogger("chatload.cli")


def _client(config: LoadTestConfig) -> ChatApiClient:
    return ChatApiClient(
        base_url=config.api.base_url,
        timeout=config.api.timeout,
        upload_path=config.api.upload_path,
    )


def _accounts(config: LoadTestConfig, workbook: Optional[str]) -> List[Credentials]:
    path = Path(workbook) if workbook else config.accounts.workbook
    return read_credentials(path, config.accounts.columns)


# ---------------- image ----------------
def run_image(args: argparse.Namespace, config: LoadTestConfig, run_log: RunLogger) -> int:
    image = config.image
    request = GenerationRequest(
        width=args.width if args.width is not None else image.width,
        height=args.height if args.height is not None else image.height,
        min_size_kb=args.min_kb if args.min_kb is not None else image.min_size_kb,
        max_size_kb=args.max_kb if args.max_kb is not None else image.max_size_kb,
        quality=args.quality if args.quality is not None else image.quality,
    )
    options = GeneratorOptions(
        texture_layers=image.texture_layers,
        noise_intensity=image.noise_intensity,
        gradient_blobs=image.gradient_blobs,
        workers=image.workers,
    )
    outdir = Path(args.out) if args.out else image.output_dir
    run_id = generate_run_id("webp")

    artifacts = run_log.timed(
        "image",
        lambda items: f"generated {len(items)} image(s)",
        generate_many,
        [request] * args.count,
        seed=args.seed,
        options=options,
        workers=args.workers,
    )
    for index, artifact in enumerate(artifacts, start=1):
        path = write_artifact(outdir / artifact_filename(run_id, index, artifact), artifact, sidecar=args.sidecar)
        run_log.log(
            "image",
            f"{path.name}: {artifact.size_kb} KB (target {artifact.target_kb} KB, tier {artifact.tier}, "
            f"{artifact.encode_passes} encode pass(es))",
        )
    return 0


# ---------------- tokens ----------------
def run_tokens(args: argparse.Namespace, config: LoadTestConfig, run_log: RunLogger) -> int:
    users = _accounts(config, args.workbook)
    tokens = run_log.timed(
        "tokens",
        lambda items: f"{len(items)}/{args.count} accounts logged in",
        fetch_user_tokens,
        _client(config),
        users,
        args.start,
        args.count,
    )
    output = Path(args.output) if args.output else default_token_path(args.start, args.count)
    write_token_file(output, tokens)
    run_log.log("tokens", f"saved {len(tokens)} tokens to {output}")
    return 0


# ---------------- friends ----------------
def run_friends(args: argparse.Namespace, config: LoadTestConfig, run_log: RunLogger) -> int:
    friends = config.friends
    client = _client(config)
    users = _accounts(config, args.workbook)
    senders = args.senders if args.senders is not None else friends.senders

    targets = run_log.timed(
        "lookup",
        lambda items: f"resolved {len(items)}/{len(users)} accounts",
        batch_get_user_info,
        client,
        users,
    )
    auth_users = run_log.timed(
        "login",
        lambda items: f"{len(items)} sender(s) logged in",
        batch_login,
        client,
        users[:senders],
    )
    if not auth_users or not targets:
        run_log.log("friends", "nothing to do: no senders or no targets", level="WARN")
        return 1

    if args.sequential:
        results = batch_add_friends(
            client,
            auth_users,
            targets,
            remark=friends.remark,
            friend_group_id=friends.friend_group_id,
            remark_name=friends.remark_name,
            delay=friends.delay,
        )
    else:
        results = batch_add_friends_concurrent(
            client,
            auth_users,
            targets,
            remark=friends.remark,
            friend_group_id=friends.friend_group_id,
            remark_name=friends.remark_name,
            concurrency=args.concurrency if args.concurrency is not None else friends.concurrency,
            batch_delay=friends.batch_delay,
        )

    succeeded = sum(1 for result in results if result.success)
    run_log.log("friends", f"{succeeded}/{len(results)} friend requests succeeded")
    for result in results:
        if not result.success:
            run_log.log("friends", f"{result.auth_uid} -> {result.target_uid}: {result.message}", level="DEBUG")
    return 0


# ---------------- scripts ----------------
def run_scripts(args: argparse.Namespace, config: LoadTestConfig, run_log: RunLogger) -> int:
    scripts = config.scripts
    outdir = Path(args.output_dir) if args.output_dir else scripts.output_dir
    written = run_log.timed(
        "scripts",
        lambda paths: f"wrote {len(paths)} script(s) to {outdir}",
        generate_chat_scripts,
        _client(config),
        _accounts(config, args.workbook),
        outdir,
        ws_url=config.api.ws_url,
        sender_start=args.start if args.start is not None else scripts.sender_start,
        sender_count=args.count if args.count is not None else scripts.sender_count,
        target_index=args.target_index if args.target_index is not None else scripts.target_index,
        message_senders=args.message_senders if args.message_senders is not None else scripts.message_senders,
        interval_ms=scripts.interval_ms,
        message_length=scripts.message_length,
    )
    if args.ecosystem:
        path = write_ecosystem_config(Path(args.ecosystem), len(written), scripts_dir=outdir.as_posix())
        run_log.log("scripts", f"pm2 config written to {path}")
    return 0


# ---------------- upload ----------------
def run_upload(args: argparse.Namespace, config: LoadTestConfig, run_log: RunLogger) -> int:
    users = _accounts(config, args.workbook)
    if not 0 <= args.account_index < len(users):
        raise ValueError(f"account index {args.account_index} is out of range (have {len(users)})")
    client = _client(config)
    auth = client.login(users[args.account_index])
    result = run_log.timed(
        "upload",
        lambda res: f"{res.path} ({res.size_bytes} bytes) -> HTTP {res.status_code}",
        client.upload_file,
        Path(args.file),
        auth.token,
    )
    run_log.log("upload", f"presigned url: {result.upload_url}", level="DEBUG")
    return 0


COMMANDS = {
    "image": run_image,
    "tokens": run_tokens,
    "friends": run_friends,
    "scripts": run_scripts,
    "upload": run_upload,
}


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Load-test helpers for a chat backend.")
    ap.add_argument("--config", default=None, help="YAML or JSON settings file")
    ap.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARN", "ERROR"])
    ap.add_argument("--log-file", default=None, help="Mirror step logs to this file")
    sub = ap.add_subparsers(dest="command", required=True)

    image = sub.add_parser("image", help="Generate synthetic WebP files of a target size")
    image.add_argument("--out", default=None, help="Output directory")
    image.add_argument("--count", type=int, default=1)
    image.add_argument("--min-kb", type=int, default=None)
    image.add_argument("--max-kb", type=int, default=None)
    image.add_argument("--width", type=int, default=None)
    image.add_argument("--height", type=int, default=None)
    image.add_argument("--quality", type=int, default=None)
    image.add_argument("--seed", type=int, default=None)
    image.add_argument("--workers", type=int, default=4, help="Images generated in parallel")
    image.add_argument("--sidecar", action="store_true", help="Write a .json description next to each file")

    for name, help_text in (
        ("tokens", "Log accounts in and save their tokens"),
        ("friends", "Send friend requests between test accounts"),
        ("scripts", "Generate WuKongIM chat scripts"),
        ("upload", "Upload a file as one test account"),
    ):
        parser = sub.add_parser(name, help=help_text)
        parser.add_argument("--workbook", default=None, help="Account workbook (.xlsx)")
        if name == "tokens":
            parser.add_argument("--start", type=int, default=0, help="0-based first account")
            parser.add_argument("--count", type=int, default=10)
            parser.add_argument("--output", default=None)
        elif name == "friends":
            parser.add_argument("--senders", type=int, default=None)
            parser.add_argument("--concurrency", type=int, default=None)
            parser.add_argument("--sequential", action="store_true", help="One request at a time")
        elif name == "scripts":
            parser.add_argument("--output-dir", default=None)
            parser.add_argument("--start", type=int, default=None, help="0-based first sender")
            parser.add_argument("--count", type=int, default=None)
            parser.add_argument("--target-index", type=int, default=None)
            parser.add_argument("--message-senders", type=int, default=None)
            parser.add_argument("--ecosystem", default=None, help="Directory for ecosystem.config.js")
        else:
            parser.add_argument("file")
            parser.add_argument("--account-index", type=int, default=0)
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        config = load_config(Path(args.config)) if args.config else LoadTestConfig()
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise SystemExit(f"Failed to load configuration {args.config}: {exc}")
    config.apply_env()
    level = args.log_level or config.logging.level
    logfile = Path(args.log_file) if args.log_file else config.logging.logfile
    configure_logging(level)

    with create_logger(level, logfile) as run_log:
        try:
            return COMMANDS[args.command](args, config, run_log)
        except (GenerationError, ChatApiError, AccountSheetError, OSError, ValueError) as exc:
            logger.error("%s failed: %s", args.command, exc)
            return 1


if __name__ == "__main__":
    raise SystemExit(main())
