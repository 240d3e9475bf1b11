"""Command line access to the configured storage backend.

Usage:
  cloudbucket buckets --max 10
  cloudbucket put my-bucket reports/q1.csv ./q1.csv
  cloudbucket get my-bucket reports/q1.csv --start 0 --end 99 -o head.bin
  cloudbucket url my-bucket reports/q1.csv --upload

The backend and its credentials come from the environment (see
``cloudbucket.common.config.Settings``). Metadata results are printed as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from cloudbucket.common.config import ConfigurationError, get_settings
from cloudbucket.common.logging import setup_logging
from cloudbucket.infra.storage.client import Capability, StorageClient, supports
from cloudbucket.infra.storage.errors import StorageError
from cloudbucket.infra.storage.factory import build_storage_client


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloudbucket", description="Provider-agnostic object storage client"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("buckets", help="List buckets (first page)")
    p.add_argument("--max", type=int, default=None, dest="max_results")

    p = sub.add_parser("mb", help="Create a bucket")
    p.add_argument("bucket")

    p = sub.add_parser("rb", help="Remove a bucket")
    p.add_argument("bucket")

    p = sub.add_parser("bucket", help="Show bucket metadata")
    p.add_argument("bucket")

    p = sub.add_parser("ls", help="List objects in a bucket (first page)")
    p.add_argument("bucket")
    p.add_argument("--max", type=int, default=None, dest="max_results")

    p = sub.add_parser("stat", help="Show object metadata")
    p.add_argument("bucket")
    p.add_argument("key")

    p = sub.add_parser("get", help="Download an object or a byte range")
    p.add_argument("bucket")
    p.add_argument("key")
    p.add_argument("--start", type=int, default=None)
    p.add_argument("--end", type=int, default=None)
    p.add_argument("-o", "--output", default="-", help="Output file (default: stdout)")

    p = sub.add_parser("put", help="Upload a file ('-' reads stdin)")
    p.add_argument("bucket")
    p.add_argument("key")
    p.add_argument("source")

    p = sub.add_parser("cp", help="Copy an object")
    p.add_argument("src_bucket")
    p.add_argument("src_key")
    p.add_argument("dest_bucket")
    p.add_argument("dest_key")

    p = sub.add_parser("rm", help="Remove an object")
    p.add_argument("bucket")
    p.add_argument("key")

    p = sub.add_parser("url", help="Issue a download (or upload) URL")
    p.add_argument("bucket")
    p.add_argument("key")
    p.add_argument("--upload", action="store_true")

    return parser


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _read_source(source: str) -> bytes:
    if source == "-":
        return sys.stdin.buffer.read()
    with open(source, "rb") as handle:
        return handle.read()


def _write_output(target: str, data: bytes) -> None:
    if target == "-":
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        return
    with open(target, "wb") as handle:
        handle.write(data)


async def run_command(args: argparse.Namespace, client: StorageClient) -> int:
    command = args.command
    if command == "buckets":
        buckets = await client.list_buckets(args.max_results)
        _print_json([bucket.to_dict() for bucket in buckets])
    elif command == "mb":
        _print_json((await client.create_bucket(args.bucket)).to_dict())
    elif command == "rb":
        await client.remove_bucket(args.bucket)
    elif command == "bucket":
        _print_json((await client.get_bucket(args.bucket)).to_dict())
    elif command == "ls":
        objects = await client.list_objects(args.bucket, args.max_results)
        _print_json([obj.to_dict() for obj in objects])
    elif command == "stat":
        _print_json((await client.get_object(args.bucket, args.key)).to_dict())
    elif command == "get":
        data = await client.static_download_object(
            args.bucket, args.key, args.start, args.end
        )
        _write_output(args.output, data)
    elif command == "put":
        data = _read_source(args.source)
        _print_json((await client.static_upload_object(args.bucket, args.key, data)).to_dict())
    elif command == "cp":
        copied = await client.copy_object(
            args.src_bucket, args.src_key, args.dest_bucket, args.dest_key
        )
        _print_json(copied.to_dict())
    elif command == "rm":
        await client.remove_object(args.bucket, args.key)
    elif command == "url":
        if args.upload:
            if not supports(client, Capability.SIGNED_UPLOAD_URL):
                print(
                    f"error: upload URLs are not supported by {client.backend}",
                    file=sys.stderr,
                )
                return 1
            url = await client.url_upload_object(args.bucket, args.key)
        else:
            url = await client.url_download_object(args.bucket, args.key)
        print(url)
    return 0


def main(argv: list[str] | None = None, client: StorageClient | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if client is None:
            settings = get_settings()
            setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)
            client = build_storage_client(settings)
        return asyncio.run(run_command(args, client))
    except StorageError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except (ConfigurationError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
