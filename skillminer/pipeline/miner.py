"""Progressive mining run: scan, checkpoint, extract, reconcile, generate."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..ai import ClaudeCliBackend
from ..classifier import BackendClassifier, group_by_topic
from ..config import MineSettings
from ..core.log import get_logger
from ..extractor import BackendExtractor
from ..generator import generate_skills, write_drafts
from ..manifest import ManifestState, ManifestStore
from ..models import PipelineStats, SkillDraft, TopicCluster
from ..sources.claude_code import ClaudeCodeSource
from .checkpoint import merge_work, write_checkpoint
from .coordinator import ParallelExtractionCoordinator, reconcile
from .scanner import StopReason, WindowScanner

logger = get_logger(__name__)


class MineResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    drafts: list[SkillDraft] = Field(default_factory=list)
    clusters: list[TopicCluster] = Field(default_factory=list)
    draft_paths: list[Path] = Field(default_factory=list)
    stats: PipelineStats = Field(default_factory=PipelineStats)
    windows_processed: int = 0
    new_conversations: int = 0
    skipped_low_value: int = 0
    pending: int = 0
    stop_reason: Optional[StopReason] = None
    dry_run: bool = False


def build_components(settings: MineSettings) -> tuple[WindowScanner, ParallelExtractionCoordinator]:
    """Scanner and coordinator wired to the Claude Code source and the CLI backend."""
    backend = ClaudeCliBackend(
        settings.ai_command,
        model=settings.ai_model,
        timeout=settings.ai_timeout,
        retries=settings.ai_retries,
    )
    scanner = WindowScanner(ClaudeCodeSource(), BackendClassifier(backend))
    coordinator = ParallelExtractionCoordinator(BackendExtractor(backend))
    return scanner, coordinator


def mine_progressive(
    settings: MineSettings,
    state: ManifestState,
    *,
    scanner: WindowScanner,
    coordinator: ParallelExtractionCoordinator,
    store: ManifestStore,
    dry_run: bool = False,
) -> MineResult:
    """Run one mining pass against ``state``.

    ``state`` is updated in place. Unless ``dry_run`` is set it is persisted
    twice: once as a checkpoint before extraction starts and once at the end.
    A dry run still scans and extracts, but writes neither drafts nor manifest.
    """
    scan = scanner.scan(
        settings.projects_dir,
        settings.min_messages,
        already_mined=state.mined_ids,
        already_pending_ids=state.pending_ids,
        max_lookback=settings.max_lookback_hours,
        max_windows=settings.max_windows,
        min_significance_ratio=settings.min_significance,
    )
    stats = PipelineStats(classify_calls=scan.classify_calls)
    result = MineResult(
        windows_processed=scan.windows_processed,
        new_conversations=len(scan.classified),
        skipped_low_value=scan.skipped_low_value,
        stop_reason=scan.stop_reason,
        dry_run=dry_run,
    )
    result.stats = stats

    work = merge_work(state.pending, scan.classified)
    if not work:
        logger.info("nothing to extract")
        result.pending = len(state.pending)
        return result

    if not dry_run:
        write_checkpoint(state, store, work)

    lookup = {conversation.id: conversation for conversation in scan.conversations}
    outcome = coordinator.extract(group_by_topic(work), lookup, settings.parallel)
    stats.extract_calls = outcome.calls
    stats.extract_failures = len(outcome.failures)

    reconcile(state, work, outcome)
    result.clusters = outcome.clusters
    result.drafts = generate_skills(outcome.clusters)
    state.merge_drafts(result.drafts, outcome.clusters)
    result.pending = len(state.pending)

    if not dry_run:
        result.draft_paths = write_drafts(result.drafts, settings.drafts_dir)
        store.save(state)

    logger.info(
        "mining finished",
        drafts=len(result.drafts),
        pending=result.pending,
        ai_calls=stats.total_calls,
        dry_run=dry_run,
    )
    return result


__all__ = ["MineResult", "build_components", "mine_progressive"]
