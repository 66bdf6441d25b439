"""
Local Task Backend - Synchronous execution for development.

This backend executes tasks immediately in the same process.
No Redis, SQS, or external dependencies required.

The handler registry defined here is shared with the SQS consumer in
lambda_handlers.py.
"""

import uuid
import logging
from datetime import date
from typing import Any, Dict, Optional
from uuid import UUID
from apps.core.task_service import TaskServiceInterface

logger = logging.getLogger(__name__)


# Task handler registry - maps task names to handler functions
TASK_HANDLERS = {}


def register_handler(task_name: str):
    """Decorator to register a task handler."""
    def decorator(func):
        TASK_HANDLERS[task_name] = func
        return func
    return decorator


class LocalTaskService(TaskServiceInterface):
    """
    Execute tasks synchronously in the same process.

    Tasks run in the same request cycle, so they block the response.
    """

    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """Execute task synchronously."""
        task_id = str(uuid.uuid4())

        logger.info(f"[LOCAL] Executing task {task_name} (id={task_id})")

        if delay_seconds > 0:
            logger.warning(f"[LOCAL] delay_seconds={delay_seconds} ignored in local backend")

        handler = TASK_HANDLERS.get(task_name)
        if handler is None:
            logger.warning(f"[LOCAL] No handler registered for task: {task_name}")
            return task_id

        try:
            result = handler(**payload)
        except Exception as e:
            logger.exception(f"[LOCAL] Task {task_name} failed: {e}")
            raise
        logger.info(f"[LOCAL] Task {task_name} completed: {result}")

        return task_id


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


# =============================================================================
# Task Handlers
# =============================================================================

@register_handler("generate_schedule_occurrences")
def handle_generate_schedule_occurrences(schedule_id: str, start_date: str = None, end_date: str = None):
    """Materialize occurrences for one schedule."""
    from apps.scheduler import services

    result = services.generate_occurrences(
        UUID(schedule_id),
        start_date=_parse_date(start_date),
        end_date=_parse_date(end_date),
    )
    return f"Created {result.created}, skipped {result.skipped} occurrences"


@register_handler("generate_all_occurrences")
def handle_generate_all_occurrences(tenant_id: str = None, days_ahead: int = None):
    """Materialize occurrences for every active schedule."""
    from apps.scheduler import services

    created = services.generate_all_occurrences(
        tenant_id=UUID(tenant_id) if tenant_id else None,
        days_ahead=days_ahead,
    )
    return f"Created {created} occurrences"


@register_handler("send_care_plan_reminders")
def handle_send_care_plan_reminders():
    """Notify caregivers about follow-ups due today or overdue."""
    from apps.members.care_service import send_care_plan_reminders

    sent = send_care_plan_reminders()
    return f"Sent {sent} reminders"


@register_handler("close_fiscal_year")
def handle_close_fiscal_year(fiscal_year_id: str, user_id: str = None, rollover: bool = False):
    """Close a fiscal year and optionally carry balances forward."""
    from apps.ledger import closing_service

    result = closing_service.close_fiscal_year(
        UUID(fiscal_year_id),
        closed_by_id=UUID(user_id) if user_id else None,
    )
    if rollover:
        carried = closing_service.rollover_balances_to_next_year(
            UUID(fiscal_year_id),
            created_by_id=UUID(user_id) if user_id else None,
        )
        return f"{result.message} Opened fiscal year {carried.next_fiscal_year_id}"
    return result.message


@register_handler("generate_financial_statement")
def handle_generate_financial_statement(fiscal_year_id: str):
    """Render a fiscal year statement PDF into storage."""
    from apps.ledger.report_service import store_fiscal_year_statement

    path = store_fiscal_year_statement(UUID(fiscal_year_id))
    return f"Stored statement at {path}"
