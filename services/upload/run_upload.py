from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

import httpx

from .application.dto import UploadRecordingCommand
from .application.upload_registry import UploadRegistry
from .config import UploadConfig, load_config
from .domain.upload import RecordingArtifact
from .infrastructure.events import RedisProgressPublisher
from .main import build_progress_observers, build_upload_use_case


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Upload a recording file.")
    parser.add_argument("path", type=Path)
    parser.add_argument("--filename", help="name to store the recording under")
    parser.add_argument(
        "--token",
        default=os.getenv("UPLOAD_AUTH_TOKEN"),
        help="bearer token (defaults to UPLOAD_AUTH_TOKEN)",
    )
    parser.add_argument("--content-type", help="overrides UPLOAD_CONTENT_TYPE")
    return parser.parse_args(argv)


async def upload_file(args: argparse.Namespace, cfg: UploadConfig) -> int:
    artifact = RecordingArtifact(
        data=args.path.read_bytes(),
        content_type=args.content_type or cfg.content_type,
    )
    registry = UploadRegistry(capacity=cfg.registry_capacity)
    observers = build_progress_observers(cfg)
    try:
        async with httpx.AsyncClient() as http_client:
            use_case = build_upload_use_case(
                cfg, registry=registry, http_client=http_client, observers=observers
            )
            outcome = await use_case.execute(
                UploadRecordingCommand(
                    artifact=artifact,
                    auth_token=args.token,
                    filename=args.filename or args.path.name,
                )
            )
    finally:
        for observer in observers:
            if isinstance(observer, RedisProgressPublisher):
                await observer.aclose()

    if outcome.success:
        print(f"Uploaded {outcome.filename}: {dict(outcome.response)}")
        return 0
    print(f"Upload failed: {outcome.error}", file=sys.stderr)
    if outcome.saved_path is not None:
        print(f"Recording saved locally to {outcome.saved_path}", file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    cfg = load_config()
    logging.basicConfig(
        level=cfg.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(upload_file(args, cfg))


if __name__ == "__main__":
    sys.exit(main())
