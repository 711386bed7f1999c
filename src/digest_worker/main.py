"""Celery application for the digest worker."""

from celery import Celery
from celery.schedules import crontab

from insights_service.config import get_settings

settings = get_settings()

app = Celery(
    "digest_worker",
    broker=settings.celery_broker,
    backend=settings.celery_backend,
    include=[
        "digest_worker.tasks.recommendations_digest",
    ],
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes
    task_soft_time_limit=240,  # 4 minutes
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_default_queue="digest",
    task_routes={
        "digest_worker.tasks.*": {"queue": "digest"},
    },
)

app.conf.beat_schedule = {
    "send-due-recommendation-digests": {
        "task": "digest_worker.tasks.recommendations_digest.send_due_recommendation_digests",
        "schedule": crontab(minute=f"*/{settings.digest_check_interval_minutes}"),
    },
}


def run() -> None:
    """Run the Celery worker."""
    app.worker_main(["worker", "--loglevel=info", "-Q", "digest"])


if __name__ == "__main__":
    run()
