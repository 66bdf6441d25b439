import logging

from celery import shared_task

from .care_service import send_care_plan_reminders

logger = logging.getLogger(__name__)


@shared_task
def send_care_plan_reminders_task():
    """
    Daily sweep: notify caregivers of follow-ups due today or overdue.
    """
    try:
        sent = send_care_plan_reminders()
    except Exception as e:
        logger.exception(f"Care plan reminder sweep failed: {e}")
        raise
    return sent
