"""
Backup worker — takes or restores metadata backups outside the API process.
Can be run as a cron job or scheduled task:

    python -m metastore.workers.backup_worker backup
    python -m metastore.workers.backup_worker restore-latest
    python -m metastore.workers.backup_worker restore-file ./data/backup.json
    python -m metastore.workers.backup_worker status
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path

from rich.console import Console

from metastore.config import settings
from metastore.dependencies import build_catalog_service
from metastore.exceptions import MetastoreError
from metastore.schemas.document import BackupBundle
from metastore.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

console = Console()


async def run_backup(catalog: CatalogService) -> dict:
    pointer = await catalog.backup()
    console.print(f"[bold green]✓[/] Backup uploaded to {pointer['backupKey']}")
    return pointer


async def run_restore_latest(catalog: CatalogService):
    result = await catalog.restore_latest()
    console.print(
        f"[bold green]✓[/] Restored {result.videos} videos, {result.users} users, "
        f"{result.sessions} sessions (backup date {result.backup_date or 'unknown'})"
    )
    return result


async def run_restore_file(catalog: CatalogService, path: Path):
    payload = json.loads(path.read_text(encoding="utf-8"))
    result = await catalog.restore(BackupBundle.from_payload(payload))
    console.print(f"[bold green]✓[/] Restored {result.videos} videos from {path}")
    return result


async def run_status(catalog: CatalogService) -> dict:
    status = await catalog.backup_status()
    console.print(f"Metadata document: {status['metadataKey']} ({'present' if status['hasMetadata'] else 'missing'})")
    latest = status["latestBackup"]
    if latest:
        console.print(f"Latest backup: {latest.get('backupKey')} at {latest.get('backupDate')}")
    else:
        console.print("[yellow]⚠ No backup uploaded yet[/]")
    return status


async def _run(command: str, path: Path | None = None, catalog: CatalogService | None = None):
    catalog = catalog or build_catalog_service(settings)
    await catalog.initialize()
    try:
        if command == "backup":
            return await run_backup(catalog)
        if command == "restore-latest":
            return await run_restore_latest(catalog)
        if command == "restore-file":
            return await run_restore_file(catalog, path)
        return await run_status(catalog)
    finally:
        await catalog.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="VideosPlus metadata backup worker")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("backup", help="Snapshot the catalog and upload it")
    sub.add_parser("restore-latest", help="Restore the most recent uploaded backup")
    restore_file = sub.add_parser("restore-file", help="Restore a backup bundle from a local file")
    restore_file.add_argument("path", type=Path)
    sub.add_parser("status", help="Show metadata and latest backup status")
    args = parser.parse_args(argv)

    logger.info("Running %s...", args.command)
    try:
        asyncio.run(_run(args.command, getattr(args, "path", None)))
    except MetastoreError as e:
        console.print(f"[bold red]✗[/] {e}")
        return 1
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(main())
