"""End-to-end mining runs over in-memory collaborators."""

from __future__ import annotations

from datetime import timedelta

import pytest

from skillminer.config import MineSettings
from skillminer.errors import ClassificationError
from skillminer.manifest import ManifestStore
from skillminer.models import DraftStatus
from skillminer.pipeline.coordinator import ParallelExtractionCoordinator
from skillminer.pipeline.miner import mine_progressive
from skillminer.pipeline.scanner import StopReason, WindowScanner

from tests.factories import FakeSource, ScriptedClassifier, ScriptedExtractor, make_conversation

LABELS = {"p1": ("pdf", 0.9), "p2": ("pdf", 0.8), "r1": ("rust-dev", 0.9), "m1": ("misc", 0.9)}


@pytest.fixture
def settings(tmp_path, projects_dir, drafts_dir):
    return MineSettings.build(projects_dir=projects_dir, skills_dir=tmp_path / "skills", drafts_dir=drafts_dir)


@pytest.fixture
def store(drafts_dir):
    return ManifestStore.for_directory(drafts_dir)


@pytest.fixture
def conversations(now):
    return [make_conversation(id, now - timedelta(hours=n + 1)) for n, id in enumerate(LABELS)]


def _run(settings, store, conversations, now, extractor, *, dry_run=False, classifier=None):
    scanner = WindowScanner(FakeSource(conversations), classifier or ScriptedClassifier(LABELS), now=lambda: now)
    state = store.load()
    result = mine_progressive(
        settings,
        state,
        scanner=scanner,
        coordinator=ParallelExtractionCoordinator(extractor),
        store=store,
        dry_run=dry_run,
    )
    return state, result


def test_first_run_writes_drafts_and_manifest(settings, store, conversations, now, drafts_dir):
    state, result = _run(settings, store, conversations, now, ScriptedExtractor())

    assert result.new_conversations == 4
    assert result.stop_reason is StopReason.EMPTY
    assert sorted(d.name for d in result.drafts) == ["misc", "pdf", "rust-dev"]
    assert sorted(p.name for p in result.draft_paths) == ["misc.md", "pdf.md", "rust-dev.md"]
    assert result.pending == 0
    assert result.stats.classify_calls == 1
    assert result.stats.extract_calls == 3
    assert result.stats.total_calls == 4

    saved = store.load()
    assert saved.mined_ids == {"p1", "p2", "r1", "m1"}
    assert saved.pending == []
    pdf = saved.get("pdf")
    assert pdf.status is DraftStatus.DRAFT
    assert pdf.conversation_count == 2
    assert (drafts_dir / "pdf.md").read_text().startswith("---\nname: pdf\n")


def test_checkpoint_written_before_extraction(settings, store, conversations, now):
    seen_on_disk = []

    class CheckingExtractor(ScriptedExtractor):
        def __call__(self, topic, items, lookup):
            seen_on_disk.append(store.load().pending_ids)
            return super().__call__(topic, items, lookup)

    _run(settings, store, conversations, now, CheckingExtractor())
    assert seen_on_disk
    assert all(ids == {"p1", "p2", "r1", "m1"} for ids in seen_on_disk)


def test_failed_topic_retried_next_run(settings, store, conversations, now):
    state, result = _run(settings, store, conversations, now, ScriptedExtractor(failing=["Rust Development"]))
    assert result.pending == 1
    assert result.stats.extract_failures == 1
    assert "rust-dev" not in {d.name for d in result.drafts}
    assert store.load().pending_ids == {"r1"}
    assert "r1" not in store.load().mined_ids

    extractor = ScriptedExtractor()
    state, result = _run(settings, store, conversations, now, extractor)
    assert extractor.calls == ["Rust Development"]
    assert result.new_conversations == 0
    assert [d.name for d in result.drafts] == ["rust-dev"]

    saved = store.load()
    assert saved.pending == []
    assert saved.mined_ids == {"p1", "p2", "r1", "m1"}


def test_second_run_finds_nothing_new(settings, store, conversations, now):
    _run(settings, store, conversations, now, ScriptedExtractor())
    before = store.path.read_text()

    classifier = ScriptedClassifier(LABELS)
    extractor = ScriptedExtractor()
    _, result = _run(settings, store, conversations, now, extractor, classifier=classifier)

    assert result.new_conversations == 0
    assert result.drafts == []
    assert classifier.batches == []
    assert extractor.calls == []
    assert store.path.read_text() == before


def test_approved_draft_keeps_status_on_regeneration(settings, store, now):
    first = [make_conversation("p1", now - timedelta(hours=1))]
    state, _ = _run(settings, store, first, now, ScriptedExtractor())
    state.update_status("pdf", DraftStatus.APPROVED)
    store.save(state)

    later = first + [make_conversation("p2", now - timedelta(hours=2))]
    _run(settings, store, later, now, ScriptedExtractor())

    record = store.load().get("pdf")
    assert record.status is DraftStatus.APPROVED
    assert record.conversation_count == 2


def test_dry_run_writes_nothing(settings, store, conversations, now, drafts_dir):
    _, result = _run(settings, store, conversations, now, ScriptedExtractor(), dry_run=True)

    assert result.dry_run
    assert len(result.drafts) == 3
    assert result.draft_paths == []
    assert not store.path.exists()
    assert list(drafts_dir.iterdir()) == []


def test_classification_failure_leaves_manifest_untouched(settings, store, conversations, now):
    _run(settings, store, conversations[:1], now, ScriptedExtractor())
    before = store.path.read_text()

    with pytest.raises(ClassificationError):
        _run(settings, store, conversations, now, ScriptedExtractor(), classifier=ScriptedClassifier(fail=True))
    assert store.path.read_text() == before


def test_empty_history(settings, store, now):
    _, result = _run(settings, store, [], now, ScriptedExtractor())
    assert result.drafts == []
    assert result.windows_processed == 2
    assert not store.path.exists()
