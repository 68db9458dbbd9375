"""
Sorts downloaded videos into category folders according to an organization scheme.
"""

import logging
from pathlib import Path
from typing import Optional

from rich.markup import escape

from pexels_cli.exceptions import (
    InvalidSchemeError,
    LedgerError,
    LedgerUnwritableError,
    RelocationFailedError,
)
from pexels_cli.models.records import AssetRecord, OrganizeOptions, OrganizeResult
from pexels_cli.storage.filesystem import FileStore, LocalFileStore
from pexels_cli.storage.ledger import MetadataLedger
from pexels_cli.utils.path import category_dir

from .schemes import RuleSet, available_schemes, resolve_rule_set, scheme_details

log = logging.getLogger(__name__)


class Organizer:
    """Categorizes every ledger record and relocates files to match."""

    def __init__(
        self,
        download_path: Path,
        ledger: MetadataLedger,
        file_store: Optional[FileStore] = None,
    ):
        self.download_path = Path(download_path).expanduser().resolve()
        self.ledger = ledger
        self.file_store = file_store or LocalFileStore()

    def destination_for(self, record: AssetRecord, category: str) -> Path:
        return category_dir(self.download_path, category) / record.filename

    async def _move_to_category(self, record: AssetRecord, category: str) -> bool:
        """
        Moves a video into its category folder and updates the record in place.

        Returns False, without touching anything, if the file is already there.
        """
        new_path = self.destination_for(record, category)
        if Path(record.local_path) == new_path:
            return False
        try:
            await self.file_store.ensure_dir(new_path.parent)
            await self.file_store.move(Path(record.local_path), new_path)
        except OSError as e:
            raise RelocationFailedError(
                f"Cannot move to category '{category}': {e}"
            ) from e

        record.local_path = str(new_path)
        record.category = category
        log.info(f"Moved video {record.id} to category: [cyan]{escape(category)}[/cyan]")
        return True

    async def categorize(
        self, options: Optional[OrganizeOptions] = None
    ) -> OrganizeResult:
        """
        Moves every categorizable video into ``<download path>/<category>/``.

        The ledger is written back once, after all videos are processed.
        Per-video move failures are collected in ``errors`` without stopping
        the run; the status is ``failed`` only for an invalid scheme or an
        unusable ledger.
        """
        options = options or OrganizeOptions()
        result = OrganizeResult()
        scheme = options.organization_scheme
        moved: list[AssetRecord] = []

        try:
            rule_set = resolve_rule_set(scheme, options.custom_rules)
            if not self.ledger.exists():
                raise LedgerError("No downloaded videos found")

            async with self.ledger.transaction() as records:
                if not records:
                    raise LedgerError("No downloaded videos found")
                log.info(
                    f"Starting organization of {len(records)} videos using {scheme} scheme"
                )
                for record in records:
                    await self._organize_one(record, rule_set, result, moved)

            log.info(
                f"Organization completed: {result.moved_files} files moved into "
                f"{len(result.categories_created)} categories"
            )
        except LedgerUnwritableError as e:
            # files already sit at their new paths; the ledger on disk does not say so
            log.error(f"[red]Error saving organized ledger: {e}[/red]")
            result.status = "failed"
            result.errors.append(str(e))
            for record in moved:
                log.error(
                    f"[red]Video {record.id} was moved to "
                    f"{escape(record.local_path)} but is not recorded there[/red]"
                )
                result.errors.append(
                    f"Video {record.id}: moved to {record.local_path} but not recorded"
                )
        except (InvalidSchemeError, LedgerError) as e:
            log.error(f"[red]Error during organization: {e}[/red]")
            result.status = "failed"
            result.errors.append(str(e))

        return result

    async def _organize_one(
        self,
        record: AssetRecord,
        rule_set: RuleSet,
        result: OrganizeResult,
        moved: list[AssetRecord],
    ) -> None:
        category = rule_set.classify(record)
        if not category:
            return
        try:
            was_moved = await self._move_to_category(record, category)
        except RelocationFailedError as e:
            log.error(f"[red]Error organizing video {record.id}: {e}[/red]")
            result.errors.append(f"Video {record.id}: {e}")
            return
        if was_moved:
            moved.append(record)
            result.moved_files += 1
            if category not in result.categories_created:
                result.categories_created.append(category)

    async def preview(
        self, options: Optional[OrganizeOptions] = None
    ) -> dict[str, list[AssetRecord]]:
        """
        Shows where each video would go, without moving files or writing the ledger.

        Raises:
            InvalidSchemeError: Unknown scheme, or ``custom`` without rules.
        """
        options = options or OrganizeOptions()
        rule_set = resolve_rule_set(options.organization_scheme, options.custom_rules)
        try:
            records = await self.ledger.read_all()
        except LedgerError as e:
            log.error(f"[red]Error reading ledger for preview: {e}[/red]")
            return {}

        preview: dict[str, list[AssetRecord]] = {}
        for record in records:
            if category := rule_set.classify(record):
                preview.setdefault(category, []).append(record)
        return preview

    @staticmethod
    def available_schemes() -> list[str]:
        return available_schemes()

    @staticmethod
    def scheme_details(name: str) -> Optional[dict[str, list[str]]]:
        return scheme_details(name)
