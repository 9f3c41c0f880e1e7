from __future__ import annotations

import logging

from propsync.infrastructure.observability.logging import (
    ContextualFormatter,
    current_log_context,
    log_context,
)
from propsync.infrastructure.observability.metrics import (
    SYNC_RUN_DURATION,
    SYNC_RUNS,
    format_prometheus,
    get_metrics_summary,
    get_registry,
    record_sync_run,
)


def test_log_context_nests_and_restores() -> None:
    with log_context(sync_run_id=7):
        with log_context(external_id="5001"):
            assert current_log_context() == {"sync_run_id": 7, "external_id": "5001"}
        assert current_log_context() == {"sync_run_id": 7}
    assert current_log_context() == {}


def test_formatter_appends_context_fields() -> None:
    record = logging.LogRecord("propsync", logging.INFO, __file__, 1, "Upserted listing", None, None)
    formatter = ContextualFormatter("%(message)s")

    with log_context(sync_run_id=3):
        text = formatter.format(record)

    assert text == "Upserted listing [sync_run_id=3]"


def test_record_sync_run_counts_and_times() -> None:
    record_sync_run("properties", "completed", 1.5, 4)
    record_sync_run("properties", "failed", 0.5, 0)

    registry = get_registry()
    runs = registry.counter(SYNC_RUNS)
    assert runs.get({"sync_type": "properties", "status": "completed"}) == 1
    assert runs.get({"sync_type": "properties", "status": "failed"}) == 1
    stats = registry.histogram(SYNC_RUN_DURATION).get_stats({"sync_type": "properties"})
    assert stats["count"] == 2
    assert stats["sum"] == 2.0

    summary = get_metrics_summary()
    assert summary["counters"]["sync_properties_synced_total"] == {"sync_type=properties": 4.0}


def test_prometheus_format() -> None:
    record_sync_run("transactions", "completed", 0.25, 2)

    text = format_prometheus()

    assert "# TYPE sync_runs_total counter" in text
    assert 'sync_runs_total{status="completed",sync_type="transactions"} 1.0' in text
    assert 'sync_run_duration_seconds_count{sync_type="transactions"} 1' in text
