"""
Celery application configuration.
"""

from celery import Celery

from flagmetrics.core.config import settings

app = Celery(
    "flagmetrics-worker",
    broker=settings.queue.broker_url,
    backend=settings.queue.result_backend,
    include=["flagmetrics.worker.tasks"],
)

app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    task_routes={
        "flagmetrics.worker.tasks.*": {"queue": "scheduled"},
    },

    # Result backend settings
    result_expires=3600,

    # Worker settings
    worker_prefetch_multiplier=1,

    # Beat schedule (periodic tasks)
    beat_schedule={
        "clear-old-metrics": {
            "task": "flagmetrics.worker.tasks.clear_old_metrics",
            "schedule": settings.metrics.sweep_interval_seconds,
        },
    },
)


if __name__ == "__main__":
    app.start()
