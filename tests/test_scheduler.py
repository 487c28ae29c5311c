from togglsync import scheduler as scheduler_module


def test_retry_not_scheduled_when_scheduler_stopped():
    assert not scheduler_module.scheduler.running
    assert scheduler_module.schedule_auto_tag_retry() is False
    assert scheduler_module.scheduler.get_job(scheduler_module.AUTO_TAG_RETRY_JOB_ID) is None
