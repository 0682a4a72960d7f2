"""
Email Templates for Decision Notifications

HTML rendering used by the e-mail delivery channel.
"""

import html
from datetime import datetime

from .presenter import Notification, NotificationSeverity

SEVERITY_COLORS = {
    NotificationSeverity.SUCCESS: "#4CAF50",
    NotificationSeverity.INFO: "#17a2b8",
    NotificationSeverity.WARNING: "#ffc107",
    NotificationSeverity.ERROR: "#dc3545",
}

SEVERITY_BOXES = {
    NotificationSeverity.SUCCESS: "info-box",
    NotificationSeverity.INFO: "info-box",
    NotificationSeverity.WARNING: "alert-box",
    NotificationSeverity.ERROR: "critical-box",
}


def _base_template(title: str, content: str, header_color: str = "#4CAF50") -> str:
    """
    Base HTML email template with consistent styling.

    Args:
        title: Email title (already escaped)
        content: HTML content to insert
        header_color: Header background color for the severity

    Returns:
        Complete HTML email string
    """
    return f"""
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style>
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;
            line-height: 1.6;
            color: #333;
            background-color: #f4f4f4;
            margin: 0;
            padding: 0;
        }}
        .container {{
            max-width: 600px;
            margin: 20px auto;
            background-color: #ffffff;
            border-radius: 8px;
            overflow: hidden;
        }}
        .header {{
            background-color: {header_color};
            color: white;
            padding: 20px;
            text-align: center;
        }}
        .content {{
            padding: 30px;
        }}
        .metric {{
            padding: 8px 0;
            border-bottom: 1px solid #eee;
        }}
        .alert-box {{
            background-color: #fff3cd;
            border-left: 4px solid #ffc107;
            padding: 15px;
        }}
        .critical-box {{
            background-color: #f8d7da;
            border-left: 4px solid #dc3545;
            padding: 15px;
        }}
        .info-box {{
            background-color: #d1ecf1;
            border-left: 4px solid #17a2b8;
            padding: 15px;
        }}
        .footer {{
            background-color: #f8f8f8;
            padding: 20px;
            text-align: center;
            font-size: 12px;
            color: #666;
        }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>{title}</h1>
        </div>
        <div class="content">
            {content}
        </div>
        <div class="footer">
            <p>Autonomous AI Decisions | {datetime.utcnow().strftime('%Y-%m-%d %H:%M:%S')} UTC</p>
            <p>This is an automated notification. Do not reply to this email.</p>
        </div>
    </div>
</body>
</html>
"""


def render_notification_email(notification: Notification) -> tuple[str, str]:
    """
    Render a decision notification as an email.

    Returns:
        Tuple of (subject, html_body)
    """
    title = html.escape(notification.title)
    box = SEVERITY_BOXES.get(notification.severity, "info-box")

    metrics = "".join(
        f'<div class="metric">{html.escape(part.strip())}</div>'
        for part in notification.body.split("|")
        if part.strip()
    )

    content = f"""
        <div class="{box}">
            <strong>{title}</strong>
        </div>
        {metrics}
    """

    subject = f"[{notification.severity.value.upper()}] {notification.title}"
    html_body = _base_template(title, content, SEVERITY_COLORS.get(notification.severity, "#4CAF50"))
    return subject, html_body
