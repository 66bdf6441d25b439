import logging
from datetime import date

from celery import shared_task

from . import services

logger = logging.getLogger(__name__)


@shared_task
def generate_schedule_occurrences_task(schedule_id, start_date=None, end_date=None):
    """
    Materialize occurrences for a single schedule.
    Dates arrive as ISO strings from TaskService.
    """
    result = services.generate_occurrences(
        schedule_id,
        start_date=date.fromisoformat(start_date) if start_date else None,
        end_date=date.fromisoformat(end_date) if end_date else None,
    )
    logger.info(f"Schedule {schedule_id}: created {result.created}, skipped {result.skipped}")
    return result.created


@shared_task
def generate_all_occurrences_task(tenant_id=None, days_ahead=None):
    """
    Daily sweep keeping every active schedule filled ahead.
    """
    try:
        return services.generate_all_occurrences(tenant_id=tenant_id, days_ahead=days_ahead)
    except Exception as e:
        logger.exception(f"Occurrence sweep failed: {e}")
        raise
