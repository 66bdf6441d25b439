"""
Celery Task Backend - Async execution via Celery + Redis.

Usage:
    Set TASK_BACKEND=celery in your .env file.
    Requires Redis and a Celery worker running.
"""

import uuid
import logging
from typing import Any, Dict
from apps.core.task_service import TaskServiceInterface

logger = logging.getLogger(__name__)


# Task name -> registered Celery task path
CELERY_TASKS = {
    "generate_schedule_occurrences": "apps.scheduler.tasks.generate_schedule_occurrences_task",
    "generate_all_occurrences": "apps.scheduler.tasks.generate_all_occurrences_task",
    "send_care_plan_reminders": "apps.members.tasks.send_care_plan_reminders_task",
    "close_fiscal_year": "apps.ledger.tasks.close_fiscal_year_task",
    "generate_financial_statement": "apps.ledger.tasks.generate_financial_statement_task",
}


def _get_celery_task(task_name: str):
    """Get the Celery task function for a task name."""
    task_path = CELERY_TASKS.get(task_name)
    if not task_path:
        raise ValueError(f"No Celery task mapped for: {task_name}")

    from celery import current_app
    return current_app.tasks.get(task_path)


class CeleryTaskService(TaskServiceInterface):
    """
    Execute tasks via Celery + Redis.

    Payload keys are passed through as task keyword arguments, so every
    Celery task signature mirrors its local handler.
    """

    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """Queue task via Celery."""
        task_id = str(uuid.uuid4())

        logger.info(f"[CELERY] Queueing task {task_name} (id={task_id})")

        task = _get_celery_task(task_name)
        if task is None:
            logger.error(f"[CELERY] Task not found: {task_name}")
            raise ValueError(f"Celery task not found: {task_name}")

        options = {'kwargs': payload, 'task_id': task_id}
        if delay_seconds > 0:
            options['countdown'] = delay_seconds
        task.apply_async(**options)

        return task_id
