"""Property-based tests for manifest bookkeeping and the significance gate.

Key properties tested:
1. mined_ids only grows, whatever sequence of operations runs
2. no id is ever both mined and pending
3. every status change either follows the table or raises and leaves the record alone
4. the significance ratio is a fraction and ignores misc / low-confidence items
"""

from __future__ import annotations

from datetime import datetime, timezone

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from skillminer.errors import InvalidTransitionError, ManifestError
from skillminer.manifest import ALLOWED_TRANSITIONS, ManifestState, transition
from skillminer.models import DraftRecord, DraftStatus
from skillminer.pipeline.gate import significance_ratio

from tests.factories import make_classified

_ids = st.sampled_from([f"conv-{n}" for n in range(8)])
_slugs = st.sampled_from(["pavement", "pdf", "rust-dev", "misc"])

_operations = st.lists(
    st.one_of(
        st.tuples(st.just("mine"), st.lists(_ids, max_size=4)),
        st.tuples(st.just("pend"), st.lists(_ids, max_size=4, unique=True)),
    ),
    max_size=20,
)

_fixture_ok = settings(suppress_health_check=[HealthCheck.function_scoped_fixture])


# =============================================================================
# Mined / pending invariants
# =============================================================================


@_fixture_ok
@given(_operations)
def test_mined_grows_and_never_overlaps_pending(operations):
    state = ManifestState()
    previous: set[str] = set()
    for kind, ids in operations:
        if kind == "mine":
            state.mark_mined(ids)
        else:
            try:
                state.record_pending([make_classified(i) for i in ids])
            except ManifestError:
                assert set(ids) & state.mined_ids
        assert previous <= state.mined_ids
        assert not (state.mined_ids & state.pending_ids)
        previous = set(state.mined_ids)


# =============================================================================
# Status transitions
# =============================================================================


@_fixture_ok
@given(st.lists(st.sampled_from(list(DraftStatus)), max_size=15))
def test_transitions_follow_table(requests):
    record = DraftRecord(slug="s", topic="t", generated_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
    for requested in requests:
        before = record.status
        if requested in ALLOWED_TRANSITIONS[before]:
            transition(record, requested)
            assert record.status is requested
        else:
            try:
                transition(record, requested)
            except InvalidTransitionError:
                assert record.status is before
            else:
                raise AssertionError(f"{before} -> {requested} should be rejected")
    if record.status is DraftStatus.DEPLOYED:
        assert record.deployed_at is not None


# =============================================================================
# Significance ratio
# =============================================================================


@_fixture_ok
@given(st.lists(st.tuples(_slugs, st.floats(min_value=0, max_value=1)), max_size=30))
def test_significance_ratio_bounds(labels):
    items = [make_classified(f"c{n}", slug, confidence) for n, (slug, confidence) in enumerate(labels)]
    ratio = significance_ratio(items)
    assert 0.0 <= ratio <= 1.0
    expected = sum(1 for slug, confidence in labels if slug != "misc" and confidence >= 0.5)
    if items:
        assert ratio == expected / len(items)
    else:
        assert ratio == 0.0
