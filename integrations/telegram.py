"""
Telegram bot integration for kitchen delay alerts.

Sends a short message to the configured chat whenever the delay escalator
withdraws future capacity.
"""

from typing import Optional

import requests
import structlog

from config import settings
from exceptions import TelegramError
from models.location import Location
from models.reconciliation import FULLY_OVERDUE_MINUTES, EscalationResult

logger = structlog.get_logger(__name__)


def get_telegram_config() -> tuple[Optional[str], Optional[str]]:
    """
    Get Telegram configuration from settings.

    Returns:
        tuple: (bot_token, chat_id)
    """
    bot_token = settings.telegram_bot_token
    chat_id = settings.telegram_chat_id

    if not bot_token or not chat_id:
        logger.debug(
            "telegram_not_configured",
            has_token=bool(bot_token),
            has_chat_id=bool(chat_id)
        )

    return bot_token, chat_id


def format_delay_message(location: Location, result: EscalationResult) -> str:
    """
    Format an escalation result as a Telegram message.

    Args:
        location: Location that fell behind
        result: Escalation outcome for this tick

    Returns:
        Formatted message string
    """
    if result.max_delay_minutes >= FULLY_OVERDUE_MINUTES:
        delay_text = "orders left over from a previous day"
    else:
        delay_text = f"{result.max_delay_minutes} min behind"

    slots = ", ".join(order.pickup_time for order in result.created if order.pickup_time)

    lines = [
        "⏱ *Kitchen delayed*",
        "",
        f"📍 {location.name}: {delay_text}",
        f"🚫 Blocking level {result.previous_level} → {result.new_level}",
    ]
    if slots:
        lines.append(f"Withdrawn slots: `{slots}`")
    if result.exhausted:
        lines.append("")
        lines.append("⚠️ No free capacity left today for further blockers")

    return "\n".join(lines)


def send_message(message: str, parse_mode: str = "Markdown") -> bool:
    """
    Send message to Telegram.

    Args:
        message: Message text to send
        parse_mode: Telegram parse mode (Markdown or HTML)

    Returns:
        True if sent, False if Telegram is not configured

    Raises:
        TelegramError: If send fails
    """
    bot_token, chat_id = get_telegram_config()

    if not bot_token or not chat_id:
        return False

    url = f"https://api.telegram.org/bot{bot_token}/sendMessage"

    payload = {
        "chat_id": chat_id,
        "text": message,
        "parse_mode": parse_mode,
        "disable_web_page_preview": True,
    }

    try:
        logger.info("sending_telegram_message", chat_id=chat_id)

        response = requests.post(url, json=payload, timeout=10)
        response.raise_for_status()

        result = response.json()

        if not result.get("ok"):
            error_msg = result.get("description", "Unknown error")
            logger.error("telegram_api_error", error=error_msg)
            raise TelegramError(f"Telegram API error: {error_msg}")

        logger.info("telegram_message_sent", message_id=result.get("result", {}).get("message_id"))
        return True

    except requests.exceptions.RequestException as e:
        logger.error("telegram_request_failed", error=str(e))
        raise TelegramError(f"Failed to send Telegram message: {str(e)}")


def notify_kitchen_delay(location: Location, result: EscalationResult) -> bool:
    """
    Send a delay alert; never raises.

    Notification failures must not abort an escalation tick.
    """
    try:
        return send_message(format_delay_message(location, result))
    except TelegramError as e:
        logger.warning("delay_alert_not_sent", location_id=location.id, error=e.message)
        return False
