"""
TaskService - Abstraction layer for async task execution.

This module provides a platform-agnostic interface for executing background tasks.
The actual backend is determined by the TASK_BACKEND environment variable.

Usage:
    from apps.core.task_service import TaskService

    # Materialize occurrences for a schedule after it is saved
    TaskService.generate_schedule_occurrences(schedule_id=uuid)

    # Close a fiscal year outside the request cycle
    TaskService.close_fiscal_year(fiscal_year_id=uuid, user_id=uuid)

Environment Configuration:
    TASK_BACKEND=local   # Sync execution (development, tests)
    TASK_BACKEND=lambda  # AWS Lambda + SQS (production)
    TASK_BACKEND=celery  # Celery + Redis
"""

import os
import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, Optional
from uuid import UUID

logger = logging.getLogger(__name__)


class TaskServiceInterface(ABC):
    """
    Abstract interface for async task execution.

    Implementations:
    - LocalTaskService: Sync execution for development/testing
    - LambdaTaskService: AWS Lambda + SQS for production
    - CeleryTaskService: Celery + Redis
    """

    @abstractmethod
    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """
        Queue a task for async execution.

        Args:
            task_name: Identifier for the task handler
            payload: JSON-serializable keyword arguments for the handler
            delay_seconds: Delay before execution (0 = immediate)

        Returns:
            Task ID for tracking
        """


def _get_backend() -> TaskServiceInterface:
    """Get the configured task backend based on TASK_BACKEND env var."""
    backend = os.getenv('TASK_BACKEND', 'local')

    if backend == 'local':
        from apps.core.backends.local_backend import LocalTaskService
        return LocalTaskService()
    elif backend == 'lambda':
        from apps.core.backends.lambda_backend import LambdaTaskService
        return LambdaTaskService()
    elif backend == 'celery':
        from apps.core.backends.celery_backend import CeleryTaskService
        return CeleryTaskService()
    else:
        raise ValueError(f"Unknown TASK_BACKEND: {backend}")


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


class TaskService:
    """
    Facade for sending async tasks.

    One static method per task type; payloads are reduced to strings so
    every backend can serialize them.
    """

    @staticmethod
    def generate_schedule_occurrences(
        schedule_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> str:
        """
        Queue occurrence generation for a single ministry schedule.

        Used by: Scheduler API after a schedule is created or its rule changes.
        """
        logger.info(f"Queueing generate_schedule_occurrences for schedule {schedule_id}")
        return _get_backend().send_task(
            task_name="generate_schedule_occurrences",
            payload={
                "schedule_id": str(schedule_id),
                "start_date": _iso(start_date),
                "end_date": _iso(end_date),
            },
        )

    @staticmethod
    def generate_all_occurrences(tenant_id: Optional[UUID] = None, days_ahead: Optional[int] = None) -> str:
        """
        Queue occurrence generation for every active schedule.

        Used by: Daily beat / EventBridge job, optionally fanned out per tenant.
        """
        logger.info(f"Queueing generate_all_occurrences (tenant={tenant_id})")
        return _get_backend().send_task(
            task_name="generate_all_occurrences",
            payload={
                "tenant_id": str(tenant_id) if tenant_id else None,
                "days_ahead": days_ahead,
            },
        )

    @staticmethod
    def send_care_plan_reminders() -> str:
        """
        Queue the daily follow-up reminder sweep.

        Used by: Daily beat / EventBridge job.
        """
        logger.info("Queueing send_care_plan_reminders task")
        return _get_backend().send_task(
            task_name="send_care_plan_reminders",
            payload={},
        )

    @staticmethod
    def close_fiscal_year(fiscal_year_id: UUID, user_id: Optional[UUID] = None, rollover: bool = False) -> str:
        """
        Queue fiscal year closing (and optionally the balance rollover).

        Used by: Ledger API for large ledgers where closing exceeds request time.
        """
        logger.info(f"Queueing close_fiscal_year for fiscal year {fiscal_year_id}")
        return _get_backend().send_task(
            task_name="close_fiscal_year",
            payload={
                "fiscal_year_id": str(fiscal_year_id),
                "user_id": str(user_id) if user_id else None,
                "rollover": rollover,
            },
        )

    @staticmethod
    def generate_financial_statement(fiscal_year_id: UUID) -> str:
        """
        Queue rendering of a fiscal year's statement PDF into storage.

        Used by: Ledger API after a fiscal year is closed.
        """
        logger.info(f"Queueing generate_financial_statement for fiscal year {fiscal_year_id}")
        return _get_backend().send_task(
            task_name="generate_financial_statement",
            payload={"fiscal_year_id": str(fiscal_year_id)},
        )
