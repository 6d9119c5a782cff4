import pytest

from backend.app.services.job_log import InvalidTransitionError, JobStatus, ScrapeJobLog
from backend.app.services.reconciler import SyncResult


def test_job_log_completes_through_syncing(store):
    job = ScrapeJobLog.start(store)
    log = store.get_scrape_log(job.log_id)
    assert log["status"] == "running"
    assert log["started_at"] is not None
    assert log["completed_at"] is None

    job.begin_sync(found=4, skipped=1)
    log = store.get_scrape_log(job.log_id)
    assert log["status"] == "syncing"
    assert log["vehicles_found"] == 4
    assert log["vehicles_skipped"] == 1
    assert log["vehicles_added"] is None
    assert log["completed_at"] is None

    job.complete(SyncResult(added=2, updated=2, removed=1))
    log = store.get_scrape_log(job.log_id)
    assert log["status"] == "completed"
    assert (log["vehicles_added"], log["vehicles_updated"], log["vehicles_removed"]) == (2, 2, 1)
    assert log["completed_at"] is not None
    assert job.is_terminal


def test_job_log_can_fail_before_syncing(store):
    job = ScrapeJobLog.start(store)
    job.fail("Timed out loading https://www.elpaseoauto.com/inventory")

    log = store.get_scrape_log(job.log_id)
    assert log["status"] == "failed"
    assert log["error_message"] == "Timed out loading https://www.elpaseoauto.com/inventory"
    assert log["vehicles_found"] is None
    assert log["completed_at"] is not None


def test_job_log_can_fail_while_syncing(memory_store):
    job = ScrapeJobLog.start(memory_store)
    job.begin_sync(found=3)
    job.fail("database unavailable")
    assert memory_store.get_scrape_log(job.log_id)["status"] == "failed"


@pytest.mark.parametrize(
    "steps",
    [
        ("complete",),
        ("begin_sync", "begin_sync"),
        ("fail", "begin_sync"),
        ("begin_sync", "complete", "fail"),
        ("fail", "fail"),
    ],
)
def test_job_log_rejects_illegal_transitions(memory_store, steps):
    job = ScrapeJobLog.start(memory_store)
    actions = {
        "begin_sync": lambda: job.begin_sync(found=0),
        "complete": lambda: job.complete(SyncResult()),
        "fail": lambda: job.fail("boom"),
    }
    for step in steps[:-1]:
        actions[step]()
    before = memory_store.get_scrape_log(job.log_id)

    with pytest.raises(InvalidTransitionError):
        actions[steps[-1]]()

    assert memory_store.get_scrape_log(job.log_id) == before


def test_completed_at_is_stamped_once(memory_store):
    job = ScrapeJobLog.start(memory_store)
    job.begin_sync(found=0)
    job.complete(SyncResult())
    stamped = memory_store.get_scrape_log(job.log_id)["completed_at"]

    with pytest.raises(InvalidTransitionError):
        job.fail("late failure")

    assert memory_store.get_scrape_log(job.log_id)["completed_at"] == stamped
    assert job.status is JobStatus.COMPLETED
