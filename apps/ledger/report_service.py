"""
PDF Report Generation Service.
Uses WeasyPrint to generate PDF reports from HTML templates.
"""
import logging
from datetime import date
from io import BytesIO
from typing import Optional
from uuid import UUID

from django.template.loader import render_to_string
from django.utils import timezone

from . import services

logger = logging.getLogger(__name__)

STATEMENT_TEMPLATE = 'ledger/reports/financial_statement.html'


def _get_weasyprint():
    """Lazy import WeasyPrint to avoid import errors if not installed."""
    try:
        from weasyprint import HTML
        return HTML
    except ImportError:
        logger.error("WeasyPrint is not installed. Install with: pip install weasyprint")
        raise ImportError(
            "WeasyPrint is required for PDF generation. "
            "Install it with: pip install weasyprint"
        )


def render_financial_statement_html(
    tenant_id: UUID,
    start_date: date,
    end_date: date,
    church_name: str = "",
    church_address: str = "",
    currency: str = "",
) -> str:
    """
    Income statement for [start_date, end_date] followed by the balance
    sheet as of end_date, rendered to HTML.
    """
    income = services.get_income_statement(tenant_id, start_date, end_date)
    balance = services.get_balance_sheet(tenant_id, end_date)

    context = {
        'title': 'Financial Statement',
        'church_name': church_name,
        'church_address': church_address,
        'currency': currency,
        'period': f"{start_date.strftime('%B %d, %Y')} - {end_date.strftime('%B %d, %Y')}",
        'generated_at': timezone.now().strftime('%B %d, %Y at %I:%M %p'),
        'income': income,
        'balance': balance,
        'net_label': 'Net Income' if income.net_income >= 0 else 'Net Loss',
        'total_liabilities_equity': (
            balance.total_liabilities + balance.total_equity + balance.unclosed_net_income
        ),
    }
    return render_to_string(STATEMENT_TEMPLATE, context)


def generate_financial_statement_pdf(
    tenant_id: UUID,
    start_date: date,
    end_date: date,
    church_name: str = "",
    church_address: str = "",
    currency: str = "",
) -> bytes:
    """
    Generate the financial statement PDF.

    Returns:
        PDF file as bytes
    """
    HTML = _get_weasyprint()
    html_content = render_financial_statement_html(
        tenant_id, start_date, end_date,
        church_name=church_name, church_address=church_address, currency=currency,
    )

    pdf_file = BytesIO()
    HTML(string=html_content).write_pdf(pdf_file)
    pdf_file.seek(0)
    return pdf_file.read()


def generate_fiscal_year_statement_pdf(fiscal_year_id: UUID, tenant_id: Optional[UUID] = None) -> bytes:
    """Financial statement covering a whole fiscal year."""
    from apps.tenants.models import Tenant

    year = services.get_fiscal_year(fiscal_year_id, tenant_id)
    if year is None:
        raise ValueError("Fiscal year not found")
    tenant = Tenant.objects.filter(id=year.tenant_id).first()

    return generate_financial_statement_pdf(
        year.tenant_id,
        year.start_date,
        year.end_date,
        church_name=tenant.name if tenant else "",
        church_address=tenant.address if tenant else "",
        currency=tenant.currency if tenant else "",
    )


def store_fiscal_year_statement(fiscal_year_id: UUID) -> str:
    """
    Render the fiscal year statement and save it to the default storage
    (S3 or local media). Returns the storage path.
    """
    from django.core.files.base import ContentFile
    from django.core.files.storage import default_storage
    from config.storage import is_s3_enabled

    year = services.get_fiscal_year(fiscal_year_id)
    if year is None:
        raise ValueError("Fiscal year not found")

    pdf_content = generate_fiscal_year_statement_pdf(year.id)
    filename = f"statements/{year.tenant_id}/{year.name.replace(' ', '_')}_{year.id}.pdf"
    path = default_storage.save(filename, ContentFile(pdf_content))
    backend = "S3" if is_s3_enabled() else "local media"
    logger.info(f"Stored financial statement for {year.name} at {path} ({backend})")
    return path
