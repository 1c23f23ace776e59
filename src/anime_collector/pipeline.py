import asyncio
from dataclasses import dataclass, field
from enum import Enum

from .catalog.shikimori import CatalogClient
from .core.checkpoint import CheckpointStore
from .core.models import CatalogRecord, Checkpoint
from .enrich.kodik import EnrichmentClient
from .filter_rank.rules import DEFAULT_FANDUB_TOKEN, filter_records
from .publish.destination import Publisher
from .transform.outbound import OutboundBuilder
from .utils.log import get_logger

log = get_logger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SCANNING = "scanning"
    FILTERING = "filtering"
    ENRICHING = "enriching"
    PUBLISHING = "publishing"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class RunResult:
    """Summary of one pipeline run, as reported to the trigger."""
    success: bool
    processed: int
    state: PipelineState
    message: str
    collected: int = 0
    published: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class PipelineDriver:
    """
    Range scan -> filter -> enrich -> transform -> publish.

    The scan is the only checkpointed phase: every fetched record is appended to
    the checkpoint and written out immediately, and ids already in a loaded
    checkpoint are not fetched again. Later phases are cheap to redo and are
    not checkpointed.

    Only one driver may use a given checkpoint file at a time; nothing here
    locks it.
    """

    def __init__(
        self,
        catalog: CatalogClient,
        enrichment: EnrichmentClient,
        builder: OutboundBuilder,
        publisher: Publisher,
        store: CheckpointStore,
        fandub_token: str = DEFAULT_FANDUB_TOKEN,
    ) -> None:
        self.catalog = catalog
        self.enrichment = enrichment
        self.builder = builder
        self.publisher = publisher
        self.store = store
        self.fandub_token = fandub_token
        self.state = PipelineState.IDLE

    def _enter(self, state: PipelineState, **context: object) -> None:
        self.state = state
        log.debug("pipeline_state", state=state.value, **context)

    async def scan(self, checkpoint: Checkpoint, start_id: int, end_id: int) -> Checkpoint:
        """
        Fetch every id in ``[start_id, end_id]`` not already in ``checkpoint``.

        Parameters:
        checkpoint (Checkpoint): Collection loaded at startup; appended to in place.
        start_id (int): First id, inclusive.
        end_id (int): Last id, inclusive.
        """
        seen = checkpoint.collected_ids()
        for anime_id in range(start_id, end_id + 1):
            if str(anime_id) in seen:
                log.debug("scan_skip_checkpointed", anime_id=anime_id)
                continue
            log.debug("scan_fetch", anime_id=anime_id)
            record = await self.catalog.fetch_by_id(anime_id)
            if record is None:
                continue
            checkpoint.collected.append(record)
            seen.add(record.id)
            self.store.save(checkpoint)
        return checkpoint

    async def process(self, record: CatalogRecord) -> bool:
        """Enrich, transform and publish a single record."""
        self._enter(PipelineState.ENRICHING, anime_id=record.id)
        enrichment = await self.enrichment.fetch_by_catalog_id(record.id)
        outbound = await self.builder.build(record, enrichment)
        self._enter(PipelineState.PUBLISHING, anime_id=record.id)
        return await self.publisher.publish(outbound)

    async def run(self, start_id: int, end_id: int) -> RunResult:
        if start_id > end_id:
            raise ValueError(f"start_id ({start_id}) must not exceed end_id ({end_id})")

        log.info("pipeline_started", start_id=start_id, end_id=end_id, token=self.fandub_token)

        self._enter(PipelineState.LOADING)
        checkpoint = self.store.load()
        resumed = len(checkpoint.collected)

        self._enter(PipelineState.SCANNING, resumed=resumed)
        try:
            await self.scan(checkpoint, start_id, end_id)
        except (KeyboardInterrupt, asyncio.CancelledError):
            self.store.save(checkpoint)
            self._enter(PipelineState.ABORTED, reason="interrupted")
            raise
        except Exception as e:
            log.exception("scan_aborted", start_id=start_id, end_id=end_id, collected=len(checkpoint.collected))
            self.store.save(checkpoint)
            self._enter(PipelineState.ABORTED)
            return RunResult(
                success=False,
                processed=0,
                state=self.state,
                message=str(e) or type(e).__name__,
                collected=len(checkpoint.collected),
            )

        collected = len(checkpoint.collected)
        log.info("scan_completed", collected=collected, resumed=resumed)
        if not collected:
            self._enter(PipelineState.DONE)
            log.warning("no_records_collected", start_id=start_id, end_id=end_id)
            return RunResult(
                success=False,
                processed=0,
                state=self.state,
                message="no records collected",
            )

        self._enter(PipelineState.FILTERING)
        worklist = filter_records(checkpoint.collected, self.fandub_token)
        log.info("filter_completed", collected=collected, accepted=len(worklist))

        published: list[str] = []
        failed: list[str] = []
        for record in worklist:
            try:
                ok = await self.process(record)
            except Exception:
                log.exception("record_processing_failed", anime_id=record.id)
                ok = False
            (published if ok else failed).append(record.id)

        self._enter(PipelineState.DONE)
        # Cleared even when some publishes failed; their catalog data is dropped with it
        self.store.clear()
        if failed:
            log.warning("records_not_published", failed_ids=failed, count=len(failed))
        log.info(
            "pipeline_completed",
            processed=len(worklist),
            published=len(published),
            failed=len(failed),
        )
        return RunResult(
            success=True,
            processed=len(worklist),
            state=self.state,
            message=f"processed {len(worklist)} anime",
            collected=collected,
            published=published,
            failed=failed,
        )
