"""Payout notification emails using the Resend API."""
import logging
from typing import List

import resend

from podslice.config import settings
from podslice.models.royalty import RoyaltyStatement
from podslice.services.royalties import format_currency

logger = logging.getLogger(__name__)

# Configure Resend API
resend.api_key = settings.RESEND_API_KEY

PODSLICE_PRIMARY = "#7c3aed"  # Violet
PODSLICE_SUCCESS = "#10b981"  # Green


def get_email_template(title: str, content: str, cta_text: str = None, cta_url: str = None) -> str:
    """
    Generate a branded email template.

    Args:
        title: Email heading
        content: HTML content for the email body
        cta_text: Optional call-to-action button text
        cta_url: Optional call-to-action button URL

    Returns:
        Complete HTML email
    """
    cta_button = ""
    if cta_text and cta_url:
        cta_button = f"""
        <div style="text-align: center; margin: 30px 0;">
            <a href="{cta_url}" style="display: inline-block; background-color: {PODSLICE_PRIMARY}; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; font-weight: 600;">
                {cta_text}
            </a>
        </div>
        """

    return f"""
    <!DOCTYPE html>
    <html>
        <head><meta charset="utf-8"></head>
        <body style="margin: 0; padding: 40px 20px; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; background-color: #f3f4f6;">
            <div style="max-width: 600px; margin: 0 auto; background-color: white; border-radius: 12px; overflow: hidden;">
                <div style="background-color: {PODSLICE_PRIMARY}; padding: 32px 40px; text-align: center;">
                    <h1 style="margin: 0; color: white; font-size: 22px;">{title}</h1>
                </div>
                <div style="padding: 40px; color: #1f2937; line-height: 1.6;">
                    {content}
                    {cta_button}
                </div>
            </div>
        </body>
    </html>
    """


class EmailService:
    """Sends transactional emails. Failures are logged and reported as False."""

    @staticmethod
    def send_payout_confirmation(
        recipients: List[str],
        organization_name: str,
        statement: RoyaltyStatement,
        transaction_id: str,
    ) -> bool:
        """Tell the organization's admins that a royalty payout went out."""
        if not settings.RESEND_API_KEY:
            logger.debug("RESEND_API_KEY not set, skipping payout confirmation email")
            return False
        if not recipients:
            return False

        period = f"{statement.period_start:%B %Y}"
        content = f"""
        <p>A royalty payout for <strong>{organization_name}</strong> has been sent.</p>
        <table style="width: 100%; border-collapse: collapse;">
            <tr><td>Period</td><td style="text-align: right;">{period}</td></tr>
            <tr><td>Views</td><td style="text-align: right;">{statement.total_views:,}</td></tr>
            <tr><td>Shares</td><td style="text-align: right;">{statement.total_shares:,}</td></tr>
            <tr><td><strong>Amount</strong></td><td style="text-align: right; color: {PODSLICE_SUCCESS};"><strong>{format_currency(statement.calculated_amount)}</strong></td></tr>
            <tr><td>Transaction</td><td style="text-align: right;">{transaction_id}</td></tr>
        </table>
        """

        try:
            resend.Emails.send({
                "from": settings.EMAIL_FROM,
                "to": recipients,
                "subject": f"Your {period} royalty payout is on its way",
                "html": get_email_template(
                    "Royalty payout sent",
                    content,
                    cta_text="View statement",
                    cta_url=f"{settings.FRONTEND_URL}/dashboard/royalties/{statement.uuid}",
                ),
            })
            logger.info(f"Payout confirmation sent to {len(recipients)} recipient(s) for royalty {statement.uuid}")
            return True
        except Exception as e:
            logger.error(f"Failed to send payout confirmation for royalty {statement.uuid}: {e}")
            return False
