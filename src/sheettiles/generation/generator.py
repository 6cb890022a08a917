"""Drive rendering, tiling and persistence of one sheet-version pyramid."""

from __future__ import annotations

import os
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, List, Optional, Set

import pyvips

from sheettiles.core.errors import (
    GenerationCancelled,
    GenerationError,
    GenerationInProgress,
    InputError,
    RenderError,
    SheetTilesError,
    StorageConflict,
)
from sheettiles.core.models import (
    Artifact,
    GenerationRequest,
    GenerationResult,
    GenerationState,
    Manifest,
    MetadataRecord,
    PyramidLevel,
    SourceImage,
    StorageConfig,
    Tile,
    TilingConfig,
)
from sheettiles.logging import get_logger
from sheettiles.rendering.base import Rasterizer
from sheettiles.storage.addressing import (
    content_hash,
    manifest_path,
    public_url,
    storage_prefix,
    thumbnail_path,
    tile_path,
)
from sheettiles.storage.base import BlobStore, MetadataStore, Outbox
from sheettiles.tiling.encoder import TileEncoder, source_to_vips
from sheettiles.tiling.geometry import enumerate_tiles
from sheettiles.tiling.manifest import build_manifest, manifest_to_json
from sheettiles.tiling.planner import plan_levels

LOGGER = get_logger(__name__)

BASE_URL_ENV_VARS = ("SHEETTILES_BASE_URL", "DRAWINGS_TILES_BASE_URL")
TILES_GENERATED_EVENT = "drawing.tiles_generated"


class _Run:
    """Mutable bookkeeping for a single invocation."""

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        self.states: List[GenerationState] = [GenerationState.IDLE]
        self.uploaded = 0
        self.deduplicated = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> GenerationState:
        return self.states[-1]

    def enter(self, state: GenerationState) -> None:
        if self.states[-1] is not state:
            self.states.append(state)
        LOGGER.debug("generation state", extra={"record_id": self.record_id, "state": state.value})

    def count(self, written: bool) -> None:
        with self._lock:
            if written:
                self.uploaded += 1
            else:
                self.deduplicated += 1


class PyramidGenerator:
    """Build, upload and record the Deep Zoom pyramid for a sheet version."""

    def __init__(
        self,
        rasterizer: Rasterizer,
        blob_store: BlobStore,
        metadata_store: MetadataStore,
        *,
        tiling: Optional[TilingConfig] = None,
        storage: Optional[StorageConfig] = None,
        outbox: Optional[Outbox] = None,
        encoder: Optional[TileEncoder] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._rasterizer = rasterizer
        self._blobs = blob_store
        self._metadata = metadata_store
        self._tiling = tiling or TilingConfig()
        self._storage = storage or StorageConfig()
        self._outbox = outbox
        self._encoder = encoder or TileEncoder(self._tiling)
        self._clock = clock

    def generate(
        self,
        request: GenerationRequest,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> GenerationResult:
        """Generate the pyramid unless the record already has one.

        Every failure is surfaced as a single :class:`GenerationError` naming the
        record and the artifact or stage that failed.
        """

        run = _Run(request.record_id)
        start = time.perf_counter()
        try:
            result = self._generate(request, run, cancel)
        except GenerationError as exc:
            run.enter(GenerationState.FAILED)
            LOGGER.error(
                "pyramid generation failed",
                extra={"record_id": request.record_id, "artifact": exc.artifact, "error": str(exc)},
            )
            raise
        except SheetTilesError as exc:
            failed_in = run.state.value
            run.enter(GenerationState.FAILED)
            LOGGER.error(
                "pyramid generation failed",
                extra={"record_id": request.record_id, "stage": failed_in, "error": str(exc)},
            )
            raise GenerationError(
                f"{type(exc).__name__} during {failed_in}: {exc}",
                record_id=request.record_id,
                artifact=failed_in,
                cause=exc,
            ) from exc
        LOGGER.info(
            "pyramid generation finished",
            extra={
                "record_id": request.record_id,
                "skipped": result.skipped,
                "levels": result.levels,
                "uploaded": result.uploaded,
                "deduplicated": result.deduplicated,
                "duration_s": f"{time.perf_counter() - start:.2f}",
            },
        )
        return result

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------
    def _generate(
        self,
        request: GenerationRequest,
        run: _Run,
        cancel: Optional[threading.Event],
    ) -> GenerationResult:
        document = self._validate_request(request)
        base_url = self._resolve_base_url()

        run.enter(GenerationState.GUARDED)
        if self._already_generated(request.record_id):
            return self._skipped(run)
        if not self._metadata.claim(request.record_id):
            raise GenerationInProgress(f"Generation already in progress for {request.record_id}")
        try:
            # Another worker may have finished between the first check and the claim.
            if self._already_generated(request.record_id):
                return self._skipped(run)
            return self._build(request, document, run, base_url, cancel)
        finally:
            self._metadata.release(request.record_id)

    def _build(
        self,
        request: GenerationRequest,
        document: bytes,
        run: _Run,
        base_url: str,
        cancel: Optional[threading.Event],
    ) -> GenerationResult:
        digest = content_hash(document, length=self._storage.hash_length)
        prefix = storage_prefix(request.org_id, digest)

        run.enter(GenerationState.RENDERING)
        source = self._render(document)
        LOGGER.info(
            "base raster ready",
            extra={"record_id": request.record_id, "width": source.width, "height": source.height},
        )

        run.enter(GenerationState.PLANNING)
        levels = plan_levels(
            source.width, source.height, self._tiling.tile_size, self._tiling.max_levels
        )
        LOGGER.info(
            "pyramid planned",
            extra={"record_id": request.record_id, "levels": len(levels), "prefix": prefix},
        )

        run.enter(GenerationState.PER_LEVEL_TILING)
        base = source_to_vips(source)
        self._run_jobs(self._tile_jobs(base, levels, prefix, run), cancel)
        _check_cancelled(cancel)

        thumb = Artifact(
            path=thumbnail_path(prefix, self._encoder.extension),
            data=self._encoder.thumbnail(base),
            content_type=self._encoder.content_type,
            cache_control=self._storage.cache_control,
        )
        self._upload(thumb, run)
        run.enter(GenerationState.THUMBNAIL_GENERATED)

        manifest = build_manifest(
            source.width,
            source.height,
            self._tiling.tile_size,
            self._tiling.overlap,
            self._encoder.format,
        )
        self._upload(
            Artifact(
                path=manifest_path(prefix),
                data=manifest_to_json(manifest),
                content_type="application/json",
                cache_control=self._storage.cache_control,
            ),
            run,
        )
        pyramid_url = public_url(base_url, prefix)
        self._record(request.record_id, manifest, pyramid_url, digest, prefix, len(levels), thumb.path, base_url)
        run.enter(GenerationState.MANIFEST_PERSISTED)

        if self._outbox is not None:
            self._outbox.append(
                TILES_GENERATED_EVENT,
                {"record_id": request.record_id, "org_id": request.org_id, "source_hash": digest},
            )
        run.enter(GenerationState.DONE)
        return GenerationResult(
            skipped=False,
            levels=len(levels),
            width=source.width,
            height=source.height,
            base_url=pyramid_url,
            source_hash=digest,
            uploaded=run.uploaded,
            deduplicated=run.deduplicated,
            states=list(run.states),
        )

    # ------------------------------------------------------------------
    # Tiles
    # ------------------------------------------------------------------
    def _tile_jobs(
        self,
        base: pyvips.Image,
        levels: Iterable[PyramidLevel],
        prefix: str,
        run: _Run,
    ) -> Iterator[Callable[[], None]]:
        for level in levels:
            level_image = self._encoder.level_image(base, level)
            count = 0
            for tile in enumerate_tiles(
                level.width,
                level.height,
                self._tiling.tile_size,
                self._tiling.overlap,
                level=level.index,
            ):
                count += 1
                yield self._tile_job(level_image, tile, prefix, run)
            LOGGER.debug(
                "tile level issued",
                extra={"level": level.index, "width": level.width, "height": level.height, "tiles": count},
            )

    def _tile_job(self, level_image: pyvips.Image, tile: Tile, prefix: str, run: _Run) -> Callable[[], None]:
        path = tile_path(prefix, tile.level, tile.col, tile.row, self._encoder.extension)

        def job() -> None:
            try:
                data = self._encoder.encode_tile(level_image, tile)
                self._upload(
                    Artifact(
                        path=path,
                        data=data,
                        content_type=self._encoder.content_type,
                        cache_control=self._storage.cache_control,
                    ),
                    run,
                )
            except GenerationError:
                raise
            except SheetTilesError as exc:
                raise GenerationError(
                    f"{type(exc).__name__} for tile {path}: {exc}",
                    record_id=run.record_id,
                    artifact=path,
                    cause=exc,
                ) from exc

        return job

    def _run_jobs(
        self,
        jobs: Iterator[Callable[[], None]],
        cancel: Optional[threading.Event],
    ) -> None:
        workers = max(1, self._tiling.workers)
        if workers == 1:
            for job in jobs:
                _check_cancelled(cancel)
                job()
            return

        window = workers * 2
        pending: Set[Future] = set()
        failure: Optional[BaseException] = None
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sheettiles") as pool:
            for job in jobs:
                if cancel is not None and cancel.is_set():
                    break
                pending.add(pool.submit(job))
                if len(pending) >= window:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    failure = _first_failure(done)
                    if failure is not None:
                        break
            done, _ = wait(pending)
        if failure is None:
            failure = _first_failure(done)
        if failure is not None:
            raise failure
        _check_cancelled(cancel)

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------
    def _upload(self, artifact: Artifact, run: _Run) -> None:
        try:
            self._blobs.put(
                artifact.path,
                artifact.data,
                artifact.content_type,
                artifact.cache_control,
                fail_if_exists=True,
            )
        except StorageConflict:
            LOGGER.debug("object already exists", extra={"path": artifact.path})
            run.count(written=False)
            return
        run.count(written=True)

    def _render(self, document: bytes) -> SourceImage:
        try:
            return self._rasterizer.render(document)
        except SheetTilesError:
            raise
        except Exception as exc:
            raise RenderError(f"Rasterizer failed: {type(exc).__name__}: {exc}") from exc

    def _already_generated(self, record_id: str) -> bool:
        record = self._metadata.get(record_id)
        return record is not None and record.is_generated

    def _record(
        self,
        record_id: str,
        manifest: Manifest,
        pyramid_url: str,
        digest: str,
        prefix: str,
        levels: int,
        thumb_path: str,
        base_url: str,
    ) -> None:
        record = MetadataRecord(
            manifest=manifest.to_dict(),
            base_url=pyramid_url,
            source_hash=digest,
            levels=levels,
            width=manifest.width,
            height=manifest.height,
            thumbnail_url=public_url(base_url, thumb_path),
            base_path=prefix,
            generated_at=self._clock(),
        )
        self._metadata.set(record_id, record)

    def _skipped(self, run: _Run) -> GenerationResult:
        LOGGER.info("tiles already generated; skipping", extra={"record_id": run.record_id})
        run.enter(GenerationState.DONE)
        return GenerationResult(skipped=True, states=list(run.states))

    def _resolve_base_url(self) -> str:
        if self._storage.base_url:
            return self._storage.base_url
        for name in BASE_URL_ENV_VARS:
            value = os.getenv(name)
            if value:
                return value
        raise InputError(
            "Missing public base URL; set storage.base_url or SHEETTILES_BASE_URL."
        )

    @staticmethod
    def _validate_request(request: GenerationRequest) -> bytes:
        if not request.record_id:
            raise InputError("Missing record id")
        if not request.org_id:
            raise InputError("Missing org id")
        if not request.document:
            raise InputError(f"Missing source document for {request.record_id}")
        return request.document


def _check_cancelled(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise GenerationCancelled("Generation cancelled before all tiles were written")


def _first_failure(done: Iterable[Future]) -> Optional[BaseException]:
    for future in done:
        exc = future.exception()
        if exc is not None:
            return exc
    return None
