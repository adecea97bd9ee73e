"""Build stores, blob storage and the review service from .difflens.yml settings.

This lives in the CLI so neither difflens_core nor difflens_store know about
the config file format.
"""

from __future__ import annotations

import logging
import subprocess

import click
from rich.console import Console

from difflens_core.service import ReviewService
from difflens_store.errors import InvalidInputError

logger = logging.getLogger(__name__)
console = Console(stderr=True)


def resolve_github_token(config: dict) -> str | None:
    """GITHUB_TOKEN first, then the GitHub CLI session (`gh auth token`)."""
    if config.get("github_token"):
        return config["github_token"]
    try:
        result = subprocess.run(["gh", "auth", "token"], capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    token = result.stdout.strip() if result.returncode == 0 else ""
    if token:
        logger.debug("Resolved GitHub token via gh CLI session.")
    return token or None


def build_version_store(config: dict):
    """
    store: memory → MemoryVersionStore (nothing survives the process)
    store: sqlite → SQLiteVersionStore at store_path (default)
    """
    store_type = config.get("store", "sqlite")
    if store_type == "memory":
        from difflens_store.memory import MemoryVersionStore

        return MemoryVersionStore()
    if store_type == "sqlite":
        from difflens_store.sqlite import SQLiteVersionStore

        return SQLiteVersionStore(db_path=config.get("store_path", ".difflens.db"))
    raise InvalidInputError(f"Unknown store {store_type!r}. Choose 'memory' or 'sqlite'.")


def build_review_store(config: dict):
    """
    review_store: same → the backend chosen by `store`
    review_store: gist → GistReviewStore (requires gist_id and a GitHub token)
    review_store: none → NoOpReviewStore
    """
    from difflens_store.noop import NoOpReviewStore

    review_store = config.get("review_store", "same")

    if review_store == "none":
        return NoOpReviewStore()

    if review_store == "gist":
        from difflens_store.gist import GistReviewStore

        gist_id = config.get("gist_id")
        token = resolve_github_token(config)
        if not gist_id or not token:
            console.print("[yellow]Gist review store requires gist_id and a GitHub token. Reviews will not be saved.[/yellow]")
            return NoOpReviewStore()
        return GistReviewStore(gist_id=gist_id, token=token)

    if review_store != "same":
        raise InvalidInputError(f"Unknown review_store {review_store!r}. Choose 'same', 'gist' or 'none'.")

    if config.get("store", "sqlite") == "memory":
        from difflens_store.memory import MemoryReviewStore

        return MemoryReviewStore()

    from difflens_store.sqlite import SQLiteReviewStore

    return SQLiteReviewStore(db_path=config.get("store_path", ".difflens.db"))


def build_blob_storage(config: dict):
    blob_store = config.get("blob_store", "local")
    if blob_store == "local":
        from difflens_store.blob import LocalBlobStorage

        return LocalBlobStorage(root=config.get("blob_root", ".difflens/blobs"))
    if blob_store == "s3":
        from difflens_store.blob import S3BlobStorage

        if not config.get("s3_bucket"):
            raise InvalidInputError("blob_store: s3 requires s3_bucket")
        return S3BlobStorage(
            bucket=config["s3_bucket"],
            prefix=config.get("s3_prefix") or "",
            region=config.get("s3_region"),
            endpoint_url=config.get("s3_endpoint_url"),
        )
    raise InvalidInputError(f"Unknown blob_store {blob_store!r}. Choose 'local' or 's3'.")


def get_service(ctx: click.Context) -> ReviewService:
    """Build the service on first use and close its stores with the context."""
    root = ctx.find_root()
    obj = root.ensure_object(dict)
    service = obj.get("service")
    if service is not None:
        return service

    config = obj["config"]
    versions = build_version_store(config)
    reviews = build_review_store(config)
    root.call_on_close(versions.close)
    root.call_on_close(reviews.close)

    service = ReviewService(
        build_blob_storage(config),
        versions,
        reviews,
        llm_config=obj.get("llm_config"),
        max_workers=config["max_workers"],
        window=config["proximity_window"],
        parallel_passes=bool(config.get("parallel_passes")),
        exclude=config.get("exclude") or [],
    )
    obj["service"] = service
    return service
