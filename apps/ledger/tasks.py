import logging
from uuid import UUID

from celery import shared_task

from apps.ledger import closing_service
from apps.ledger.report_service import store_fiscal_year_statement

logger = logging.getLogger(__name__)


@shared_task
def close_fiscal_year_task(fiscal_year_id, user_id=None, rollover=False):
    """
    Close a fiscal year in the background, optionally rolling balances forward.
    """
    closed_by = UUID(user_id) if user_id else None
    try:
        result = closing_service.close_fiscal_year(UUID(fiscal_year_id), closed_by_id=closed_by)
    except ValueError as e:
        logger.warning(f"Fiscal year {fiscal_year_id} was not closed: {e}")
        return str(e)

    logger.info(result.message)
    if rollover:
        carried = closing_service.rollover_balances_to_next_year(UUID(fiscal_year_id), created_by_id=closed_by)
        logger.info(f"Carried {carried.accounts_carried} balances into fiscal year {carried.next_fiscal_year_id}")
    return result.message


@shared_task
def generate_financial_statement_task(fiscal_year_id):
    """
    Render the fiscal year statement PDF and save it to storage.
    """
    try:
        return store_fiscal_year_statement(UUID(fiscal_year_id))
    except Exception as e:
        logger.exception(f"Error generating statement for fiscal year {fiscal_year_id}: {e}")
        raise
