# salon/email_templates.py

from html import escape
from typing import Optional


def _card(rows: str) -> str:
    return (
        '<div style="background-color: #f9f9f9; padding: 15px; border-radius: 8px; margin: 20px 0;">'
        f"{rows}"
        "</div>"
    )


def _row(label: str, value: str) -> str:
    return f'<p style="margin: 5px 0;"><strong>{label}:</strong> {escape(value)}</p>'


def client_reminder_email(
    studio_name: str,
    client_name: str,
    service_name: str,
    date_str: str,
    time_str: str,
) -> tuple:
    subject = "Reminder: your appointment is coming up!"
    html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        f'<h2 style="color: #333;">Hello {escape(client_name)},</h2>'
        '<p style="font-size: 16px; line-height: 1.6; color: #555;">'
        f"Just a reminder of your appointment at <strong>{time_str}</strong>."
        "</p>"
        + _card(_row("Service", service_name) + _row("Date", date_str) + _row("Time", time_str))
        + '<p style="font-size: 16px; line-height: 1.6; color: #555;">See you soon!</p>'
        f'<p style="font-size: 14px; color: #888; margin-top: 30px;">{studio_name}</p>'
        "</div>"
    )
    return subject, html


def admin_notification_email(
    client_name: str,
    client_email: str,
    client_phone: Optional[str],
    service_name: str,
    date_str: str,
    time_str: str,
) -> tuple:
    subject = f"Reminder: appointment at {time_str}"
    client_rows = _row("Name", client_name) + _row("Email", client_email)
    if client_phone:
        client_rows += _row("Phone", client_phone)
    html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        '<h2 style="color: #333;">Upcoming appointment</h2>'
        + _card(
            '<h3 style="margin-top: 0;">Client</h3>'
            + client_rows
            + '<h3 style="margin-top: 20px;">Service</h3>'
            + _row("Service", service_name)
            + _row("Date", date_str)
            + _row("Time", time_str)
        )
        + "</div>"
    )
    return subject, html
