"""Invitation, reminder and welcome email bodies.

Each renderer returns a (subject, html, text) triple. Interpolated values are
HTML-escaped in the HTML body; the text body carries them verbatim.
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from datetime import datetime

from h1b_portal.logic.timestamps import format_long_date

INVITATION_SUBJECT = "H1-B Petition Questionnaire - Action Required"
REMINDER_SUBJECT = "Reminder: Complete Your H1-B Petition Questionnaire"
WELCOME_SUBJECT = "Welcome to H1-B Portal"


@dataclass(frozen=True)
class InvitationEmailContext:
    first_name: str
    last_name: str
    employer_name: str
    case_type: str
    job_title: str
    login_url: str
    expires_at: datetime
    is_reminder: bool = False


def display_case_type(case_type: str) -> str:
    """'h1b_initial' -> 'H1B INITIAL' (first underscore only, as the portal always showed it)."""
    return case_type.replace("_", " ", 1).upper()


def render_invitation(ctx: InvitationEmailContext) -> tuple[str, str, str]:
    expiration = format_long_date(ctx.expires_at)
    subject = REMINDER_SUBJECT if ctx.is_reminder else INVITATION_SUBJECT
    opening = "This is a reminder that you have" if ctx.is_reminder else "You have"
    greeting = "Reminder:" if ctx.is_reminder else "Action Required:"
    accent = "#dc2626" if ctx.is_reminder else "#059669"
    petition_type = display_case_type(ctx.case_type)

    e = html.escape
    employer_html = f"Employer: {e(ctx.employer_name)}<br>" if ctx.employer_name else ""
    body_html = f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>H1-B Petition Questionnaire</title>
</head>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="text-align: center; margin-bottom: 40px;">
    <div style="font-size: 24px; font-weight: bold; color: #2563eb;">H1-B Portal</div>
    <div style="font-size: 20px; font-weight: 600; color: {accent};">{greeting} Complete Your Questionnaire</div>
  </div>
  <p>Dear {e(ctx.first_name)} {e(ctx.last_name)},</p>
  <p>{opening} been assigned a questionnaire to complete for your H1-B petition process.</p>
  <div style="background-color: #f0f9ff; border-left: 4px solid #2563eb; padding: 20px; margin: 20px 0;">
    <strong>Case Details:</strong><br>
    Position: {e(ctx.job_title)}<br>
    Petition Type: {e(petition_type)}<br>
    {employer_html}
    Due Date: {expiration}
  </div>
  <p>To complete your questionnaire, please sign in to your account using the button below:</p>
  <p style="text-align: center;">
    <a href="{e(ctx.login_url, quote=True)}" style="background-color: #2563eb; color: white; padding: 12px 30px; text-decoration: none; border-radius: 6px;">Sign In &amp; Complete Questionnaire</a>
  </p>
  <p><strong>Don't have an account yet?</strong> Click the button above and register using this email address. Once registered, you'll see your questionnaire in your dashboard.</p>
  <div style="background-color: #fef3c7; border-left: 4px solid #f59e0b; padding: 15px; margin: 20px 0;">
    <strong>Important:</strong> This invitation will expire on {expiration}. Please complete your questionnaire before this date to avoid delays in your petition process.
  </div>
  <p>The questionnaire covers your background, education, work experience, and immigration history. It typically takes 30-45 minutes to complete, and you can save your progress and return later.</p>
  <p>If you have any questions or need assistance, please contact your employer or attorney handling your case.</p>
  <p style="margin-top: 40px; font-size: 14px; color: #6b7280;">Best regards,<br>The H1-B Portal Team</p>
  <p style="font-size: 12px; color: #6b7280;">This is an automated message. Please do not reply to this email. If you received this email in error, please ignore it.</p>
</body>
</html>
"""

    employer_text = f"Employer: {ctx.employer_name}\n" if ctx.employer_name else ""
    body_text = f"""{greeting} Complete Your H1-B Petition Questionnaire

Dear {ctx.first_name} {ctx.last_name},

{opening} been assigned a questionnaire to complete for your H1-B petition process.

CASE DETAILS:
Position: {ctx.job_title}
Petition Type: {petition_type}
{employer_text}Due Date: {expiration}

To complete your questionnaire, please sign in to your account:
{ctx.login_url}

Don't have an account yet? Visit the link above and register using this email address. Once registered, you'll see your questionnaire in your dashboard.

IMPORTANT: This invitation will expire on {expiration}. Please complete your questionnaire before this date to avoid delays in your petition process.

If you have any questions or need assistance, please contact your employer or attorney handling your case.

Best regards,
The H1-B Portal Team

---
This is an automated message. Please do not reply to this email.
"""
    return subject, body_html, body_text


def render_welcome(first_name: str, dashboard_url: str) -> tuple[str, str, str]:
    e = html.escape
    body_html = f"""<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"><title>{WELCOME_SUBJECT}</title></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="font-size: 24px; font-weight: bold; color: #2563eb; text-align: center;">H1-B Portal</div>
  <h2>Welcome, {e(first_name)}!</h2>
  <p>Your account has been successfully created. You can now access your dashboard to view and complete any assigned H1-B questionnaires.</p>
  <p style="text-align: center;"><a href="{e(dashboard_url, quote=True)}">Go to Dashboard</a></p>
  <p>Best regards,<br>The H1-B Portal Team</p>
</body>
</html>
"""
    body_text = f"""Welcome to H1-B Portal!

Dear {first_name},

Your account has been successfully created. You can now access your dashboard to view and complete any assigned H1-B questionnaires.

Visit your dashboard: {dashboard_url}

Best regards,
The H1-B Portal Team
"""
    return WELCOME_SUBJECT, body_html, body_text


__all__ = [
    "InvitationEmailContext",
    "INVITATION_SUBJECT",
    "REMINDER_SUBJECT",
    "WELCOME_SUBJECT",
    "display_case_type",
    "render_invitation",
    "render_welcome",
]
