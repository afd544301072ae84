"""
Export pipeline for collections.

Writes a collection (metadata, photographs, field book pages, voice
notes) to a self-contained directory for processing outside the app:

    <root>/<prefix>_<locality>_<yyyy-MM-dd_HH-mm-ss>/
        images/  audio/  collection_data.json  README.txt

An existing directory with the same name is deleted and replaced. File
writes happen one at a time in a worker thread, so the event loop stays
responsive and progress can be reported after each checkpoint.

Failures are returned as ``ExportResult(success=False)``. Partially
written files are left on disk; callers should remove the directory
before retrying.
"""

import asyncio
import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set, Tuple

from stromcollect.core.events import EventStore, ExportCompleted, ExportFailed, publish
from stromcollect.core.models import Collection
from stromcollect.errors import ExportInProgressError, StromCollectError

from .manifest import (
    AUDIO_DIR,
    IMAGES_DIR,
    INDEX_FILENAME,
    MANIFEST_FILENAME,
    README_FILENAME,
    ExportableCollection,
    drawer_overview_filename,
    export_folder_name,
    field_book_filenames,
    format_for_filename,
    legacy_field_book_filename,
    specimen_image_filenames,
    voice_note_filename,
)
from .readme import build_export_index, build_readme

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

# Errors converted into a failed ExportResult at the pipeline boundary
EXPORT_ERRORS = (OSError, ValueError, shutil.Error, StromCollectError)


@dataclass
class ExportResult:
    """Outcome of an export request."""

    success: bool
    export_path: Optional[Path] = None
    error: Optional[str] = None
    files_exported: int = 0
    total_size: int = 0
    failed_collections: List[str] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str) -> "ExportResult":
        return cls(success=False, error=error)


class ProgressTracker:
    """Monotonic progress in [0, 1]; checkpoints below the last value are ignored."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.value = 0.0
        self._callback = callback

    def report(self, fraction: float) -> None:
        self.value = max(self.value, min(max(fraction, 0.0), 1.0))
        if self._callback is not None:
            self._callback(self.value)


class _FileWriter:
    """Counts files and bytes written during one export."""

    def __init__(self):
        self.files = 0
        self.size = 0

    async def write(self, path: Path, data: bytes) -> None:
        await asyncio.to_thread(path.write_bytes, data)
        self.files += 1
        self.size += len(data)

    async def write_text(self, path: Path, text: str) -> None:
        await self.write(path, text.encode("utf-8"))


class DataExportManager:
    """
    Exports collections to directories on disk.

    One instance serves the whole session. ``is_exporting``, ``progress``
    and ``last_result`` reflect the most recent top-level request so a
    front end can render them. A collection cannot be exported twice at
    the same time; the second request fails immediately.
    """

    def __init__(
        self,
        export_root: Path,
        folder_prefix: str = "StromCollect_Export",
        event_store: Optional[EventStore] = None,
    ):
        self.export_root = Path(export_root)
        self.folder_prefix = folder_prefix
        self.progress = 0.0
        self.last_result: Optional[ExportResult] = None
        self._event_store = event_store
        self._active: Set[str] = set()
        self._aggregate_running = False

    @property
    def is_exporting(self) -> bool:
        return bool(self._active) or self._aggregate_running

    def folder_name(self, collection: Collection) -> str:
        return export_folder_name(collection, self.folder_prefix)

    def _tracker(self, on_progress: Optional[ProgressCallback]) -> ProgressTracker:
        def sink(value: float) -> None:
            self.progress = value
            if on_progress is not None:
                on_progress(value)

        self.progress = 0.0
        return ProgressTracker(sink)

    # -- single collection ----------------------------------------------

    async def export_collection(
        self,
        collection: Collection,
        destination_root: Optional[Path] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ExportResult:
        """
        Export one collection.

        Args:
            collection: Collection to export
            destination_root: Parent directory (default: ``export_root``)
            on_progress: Called with the new fraction after each checkpoint

        Returns:
            ExportResult; never raises for I/O problems
        """
        root = Path(destination_root) if destination_root else self.export_root
        # A rejected duplicate request must not reset the running export's progress
        tracker = None if collection.id in self._active else self._tracker(on_progress)

        result = await self._export_one(collection, root, tracker)

        self.last_result = result
        self._publish_result(collection.id, result)
        return result

    async def _export_one(
        self, collection: Collection, root: Path, tracker: Optional[ProgressTracker]
    ) -> ExportResult:
        if collection.id in self._active:
            error = ExportInProgressError(
                "export_in_progress",
                f"An export of {collection.locality!r} is already running",
            )
            logger.warning(str(error), extra={"collection_id": collection.id})
            return ExportResult.failure(error.message)

        self._active.add(collection.id)
        try:
            logger.info(
                f"Exporting collection {collection.locality!r} to {root}",
                extra={"collection_id": collection.id},
            )
            result = await self._write_collection(collection, root, tracker or ProgressTracker())
        except EXPORT_ERRORS as e:
            logger.error(
                f"Export of {collection.locality!r} failed: {e}",
                extra={"collection_id": collection.id},
            )
            return ExportResult.failure(str(e))
        finally:
            self._active.discard(collection.id)

        logger.info(
            f"Exported {result.files_exported} files ({result.total_size} bytes)",
            extra={"collection_id": collection.id, "export_path": str(result.export_path)},
        )
        return result

    async def _write_collection(
        self, collection: Collection, root: Path, tracker: ProgressTracker
    ) -> ExportResult:
        export_dir = root / self.folder_name(collection)

        if export_dir.exists():
            logger.info(f"Replacing existing export {export_dir}")
            await asyncio.to_thread(shutil.rmtree, export_dir)

        await asyncio.to_thread(export_dir.mkdir, parents=True)
        tracker.report(0.1)

        images_dir = export_dir / IMAGES_DIR
        audio_dir = export_dir / AUDIO_DIR
        await asyncio.to_thread(images_dir.mkdir)
        await asyncio.to_thread(audio_dir.mkdir)
        tracker.report(0.2)

        writer = _FileWriter()

        overview_name = drawer_overview_filename(collection)
        if overview_name is not None:
            await writer.write(images_dir / overview_name, collection.drawer_overview_image)
        tracker.report(0.3)

        total_specimens = len(collection.specimens)
        for index, specimen in enumerate(collection.specimens):
            # Numbered photos, or the legacy single photo when there are none
            photos = specimen.specimen_images or [specimen.specimen_image_data]
            for name, data in zip(specimen_image_filenames(specimen), photos):
                await writer.write(images_dir / name, data)

            for name, data in zip(field_book_filenames(specimen), specimen.field_book_images):
                await writer.write(images_dir / name, data)

            legacy_page = legacy_field_book_filename(specimen)
            if legacy_page is not None:
                await writer.write(images_dir / legacy_page, specimen.field_book_image_data)

            voice_name = voice_note_filename(specimen)
            if voice_name is not None:
                await writer.write(audio_dir / voice_name, specimen.voice_note_data)

            tracker.report(0.3 + 0.6 * (index + 1) / total_specimens)

        manifest = ExportableCollection.from_collection(collection)
        await writer.write_text(export_dir / MANIFEST_FILENAME, manifest.to_json())
        tracker.report(0.95)

        await writer.write_text(export_dir / README_FILENAME, build_readme(manifest))
        tracker.report(1.0)

        return ExportResult(
            success=True,
            export_path=export_dir,
            files_exported=writer.files,
            total_size=writer.size,
        )

    # -- all collections ------------------------------------------------

    async def export_all_collections(
        self,
        collections: Iterable[Collection],
        destination_root: Optional[Path] = None,
        isolate_failures: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ExportResult:
        """
        Export every collection under one timestamped directory.

        Collections are exported in the order given. By default the first
        failure aborts the whole export. With ``isolate_failures`` failed
        collections are skipped and named in ``failed_collections``.
        """
        collections = list(collections)
        if not collections:
            result = ExportResult.failure("No collections found to export")
            self.last_result = result
            return result

        root = Path(destination_root) if destination_root else self.export_root
        tracker = self._tracker(on_progress)

        self._aggregate_running = True
        try:
            result = await self._write_all(collections, root, tracker, isolate_failures)
        except EXPORT_ERRORS as e:
            logger.error(f"Export of all collections failed: {e}")
            result = ExportResult.failure(str(e))
        finally:
            self._aggregate_running = False

        self.last_result = result
        self._publish_result(None, result)
        return result

    async def _write_all(
        self,
        collections: List[Collection],
        root: Path,
        tracker: ProgressTracker,
        isolate_failures: bool,
    ) -> ExportResult:
        started = datetime.now(timezone.utc)
        master_dir = root / f"StromCollect_Complete_Export_{format_for_filename(started)}"

        if master_dir.exists():
            await asyncio.to_thread(shutil.rmtree, master_dir)
        await asyncio.to_thread(master_dir.mkdir, parents=True)

        included: List[Tuple[Collection, str]] = []
        failed: List[str] = []
        total_files = 0
        total_size = 0

        with tempfile.TemporaryDirectory(prefix=".stromcollect_staging_", dir=root) as staging:
            for index, collection in enumerate(collections):
                result = await self._export_one(collection, Path(staging), None)

                if result.success:
                    directory = result.export_path.name
                    destination = master_dir / directory
                    if destination.exists():
                        await asyncio.to_thread(shutil.rmtree, result.export_path)
                        result = ExportResult.failure(f"Duplicate export directory {directory}")

                if not result.success:
                    if not isolate_failures:
                        return ExportResult.failure(
                            f"Export of collection {collection.locality!r} failed: {result.error}"
                        )
                    logger.warning(
                        f"Skipping collection {collection.locality!r}: {result.error}",
                        extra={"collection_id": collection.id},
                    )
                    failed.append(collection.locality)
                else:
                    await asyncio.to_thread(shutil.move, str(result.export_path), str(destination))

                    included.append((collection, directory))
                    total_files += result.files_exported
                    total_size += result.total_size

                tracker.report((index + 1) / len(collections))

        index_text = build_export_index(included, started)
        await asyncio.to_thread((master_dir / INDEX_FILENAME).write_text, index_text, "utf-8")

        if failed:
            logger.warning(f"Skipped {len(failed)} collections that failed to export: {failed}")

        return ExportResult(
            success=True,
            export_path=master_dir,
            files_exported=total_files,
            total_size=total_size,
            failed_collections=failed,
        )

    def _publish_result(self, collection_id: Optional[str], result: ExportResult) -> None:
        if result.success:
            event = ExportCompleted(
                collection_id=collection_id,
                destination=str(result.export_path),
                files_exported=result.files_exported,
                total_size=result.total_size,
            )
        else:
            event = ExportFailed(collection_id=collection_id, error=result.error or "")
        publish(self._event_store, event)
