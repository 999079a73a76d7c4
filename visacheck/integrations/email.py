from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage

from visacheck.core.config import settings
from visacheck.schemas.evaluation import EvaluationRecord
from visacheck.services.reporting import render_text_report

logger = logging.getLogger(__name__)


def smtp_ready() -> bool:
    return bool(settings.smtp_host and (settings.smtp_from or settings.smtp_user))


def _smtp_password() -> str | None:
    if not settings.smtp_password:
        return None
    # Gmail app passwords are often copied with spaces every 4 chars.
    return settings.smtp_password.replace(" ", "")


def _smtp_login_if_needed(server: smtplib.SMTP) -> None:
    if settings.smtp_user and _smtp_password():
        server.login(settings.smtp_user, _smtp_password())


def _send_via_smtp_with(host: str, port: int, use_tls: bool, msg: EmailMessage, context: ssl.SSLContext) -> None:
    if use_tls:
        with smtplib.SMTP(host, port, timeout=15) as server:
            server.starttls(context=context)
            _smtp_login_if_needed(server)
            server.send_message(msg)
        return

    with smtplib.SMTP_SSL(host, port, context=context, timeout=15) as server:
        _smtp_login_if_needed(server)
        server.send_message(msg)


def build_results_message(record: EvaluationRecord, recipient: str) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = f"Your Visa Evaluation Results - {record.applicant.visa_type}"
    msg["From"] = settings.smtp_from or settings.smtp_user or ""
    msg["To"] = recipient
    msg.set_content(render_text_report(record))
    return msg


def send_evaluation_results(record: EvaluationRecord, recipient: str) -> bool:
    if not smtp_ready():
        logger.info("evaluation_email_skipped id=%s reason=smtp_not_configured", record.evaluation_id)
        return False

    msg = build_results_message(record, recipient)
    context = ssl.create_default_context()
    primary_mode = "STARTTLS" if settings.smtp_use_tls else "SSL"
    try:
        _send_via_smtp_with(
            host=settings.smtp_host or "",
            port=settings.smtp_port,
            use_tls=settings.smtp_use_tls,
            msg=msg,
            context=context,
        )
        logger.info("evaluation_email_sent id=%s mode=%s", record.evaluation_id, primary_mode)
        return True
    except Exception as exc:  # noqa: BLE001 - caller reports delivery failure
        logger.exception(
            "evaluation_email_failed id=%s host=%s port=%s mode=%s: %s",
            record.evaluation_id,
            settings.smtp_host,
            settings.smtp_port,
            primary_mode,
            exc,
        )

    if not settings.smtp_fallback_ssl:
        return False

    fallback_port = 465 if settings.smtp_use_tls else 587
    fallback_tls = not settings.smtp_use_tls
    fallback_mode = "STARTTLS" if fallback_tls else "SSL"
    try:
        _send_via_smtp_with(
            host=settings.smtp_host or "",
            port=fallback_port,
            use_tls=fallback_tls,
            msg=msg,
            context=context,
        )
        logger.info("evaluation_email_sent id=%s mode=%s fallback=true", record.evaluation_id, fallback_mode)
        return True
    except Exception as exc:  # noqa: BLE001 - caller reports delivery failure
        logger.exception(
            "evaluation_email_fallback_failed id=%s host=%s port=%s mode=%s: %s",
            record.evaluation_id,
            settings.smtp_host,
            fallback_port,
            fallback_mode,
            exc,
        )
        return False
