"""
stafftrak/notify.py
Email notifications, dispatched through the Supabase 'send-email' edge function.

Failures never propagate: a notification that cannot be sent is logged and
reported back as {"success": False, "error": ...}.
"""

import json
import logging

from stafftrak.db import _get_secret, get_supabase_client

logger = logging.getLogger(__name__)

EMAIL_FUNCTION = "send-email"


def send_email(to: str, template: str, data: dict, client=None) -> dict:
    """Invoke the email edge function and return its decoded JSON result."""
    if not to:
        return {"success": False, "error": "No recipient"}
    client = client or get_supabase_client()
    try:
        response = client.functions.invoke(
            EMAIL_FUNCTION,
            invoke_options={"body": {"to": to, "template": template, "data": data}},
        )
    except Exception as exc:
        logger.error("Email '%s' to %s failed: %s", template, to, exc, exc_info=True)
        return {"success": False, "error": str(exc)}

    if isinstance(response, (bytes, str)):
        try:
            return json.loads(response or "{}")
        except ValueError:
            return {"success": True}
    return response if isinstance(response, dict) else {"success": True}


def notify_evaluation_ready(staff_email: str, staff_name: str, evaluator_name: str,
                            school_year: str | None = None, client=None) -> dict:
    return send_email(
        staff_email,
        "evaluation_ready",
        {
            "staffName": staff_name,
            "evaluatorName": evaluator_name,
            "schoolYear": school_year or _get_secret("SCHOOL_YEAR", "2025-2026"),
        },
        client,
    )


def notify_meeting_scheduled(staff_email: str, staff_name: str, evaluator_name: str,
                             meeting_type: str, when: str, location: str = "",
                             client=None) -> dict:
    return send_email(
        staff_email,
        "meeting_scheduled",
        {
            "staffName": staff_name,
            "evaluatorName": evaluator_name,
            "type": meeting_type,
            "date": when,
            "location": location,
        },
        client,
    )


def notify_observation_scheduled(staff_email: str, staff_name: str, evaluator_name: str,
                                 observation_type: str, when_date: str, when_time: str,
                                 client=None) -> dict:
    return send_email(
        staff_email,
        "observation_scheduled",
        {
            "staffName": staff_name,
            "evaluatorName": evaluator_name,
            "date": when_date,
            "time": when_time,
            "type": observation_type,
        },
        client,
    )
