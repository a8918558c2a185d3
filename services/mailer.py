# services/mailer.py
import html
import logging
from typing import Iterable, Optional, Union

import requests

import settings

logger = logging.getLogger(__name__)


def send_mail(to: Union[str, Iterable[str]], subject: str, html_body: str, cc: Optional[list] = None) -> bool:
    """
    POST one message to the mail HTTP API.
    Returns False instead of raising: a mail outage must not undo a workflow step.
    """
    recipients = [to] if isinstance(to, str) else [r for r in to if r]
    if not recipients:
        logger.info("mail skipped (no recipient): %s", subject)
        return False

    if not settings.MAIL_ENABLED:
        logger.info("mail disabled, would send %r to %s", subject, ", ".join(recipients))
        return False

    payload = {
        "from": settings.MAIL_FROM,
        "to": recipients,
        "subject": subject,
        "html": html_body,
    }
    cc = cc if cc is not None else settings.MAIL_CC
    if cc:
        payload["cc"] = cc
    headers = {
        "Authorization": f"Bearer {settings.MAIL_API_KEY}",
        "Content-Type": "application/json",
    }
    try:
        r = requests.post(
            settings.MAIL_API_URL,
            json=payload,
            headers=headers,
            timeout=settings.MAIL_TIMEOUT_SECONDS,
        )
        r.raise_for_status()
    except requests.RequestException:
        logger.exception("mail to %s failed: %s", ", ".join(recipients), subject)
        return False

    logger.info("mail sent to %s: %s", ", ".join(recipients), subject)
    return True


# ----------------------------
# Templates
# ----------------------------
def _e(v) -> str:
    return html.escape(str(v if v is not None else ""))


def send_assignment_mail(to: str, *, trial, department_name: str, username: str) -> bool:
    subject = f"[Action Required] Digital Sample Card: {trial.part_name} (Trial No: {trial.trial_no or trial.trial_id})"
    body = f"""
    <p>Dear {_e(username)},</p>
    <p>A digital sample card is waiting for <b>{_e(department_name)}</b>.</p>
    <table>
      <tr><td>Trial ID</td><td>{_e(trial.trial_id)}</td></tr>
      <tr><td>Part name</td><td>{_e(trial.part_name)}</td></tr>
      <tr><td>Pattern code</td><td>{_e(trial.pattern_code)}</td></tr>
      <tr><td>Trial type</td><td>{_e(trial.trial_type)}</td></tr>
    </table>
    <p><a href="{_e(settings.APP_URL)}">Open the Digital Trial Card</a></p>
    """
    return send_mail(to, subject, body)


def send_hod_review_mail(to: str, *, trial, submitted_by: str) -> bool:
    subject = f"[Approval Required] Digital Sample Card: {trial.part_name} (Trial No: {trial.trial_no or trial.trial_id})"
    body = f"""
    <p>{_e(submitted_by)} submitted trial <b>{_e(trial.trial_id)}</b> for your approval.</p>
    <p><a href="{_e(settings.APP_URL)}">Review it in the Digital Trial Card</a></p>
    """
    return send_mail(to, subject, body)


def send_trial_updated_mail(to: list, *, trial, updated_by: str) -> bool:
    subject = f"Digital Sample Card updated: {trial.part_name} (Trial No: {trial.trial_no or trial.trial_id})"
    body = f"""
    <p>Trial <b>{_e(trial.trial_id)}</b> was updated by {_e(updated_by)}.</p>
    <p>Please check the revised planning details before continuing.</p>
    """
    return send_mail(to, subject, body)


def send_otp_mail(to: str, *, otp: str, minutes: int, purpose: str) -> bool:
    subject = f"Digital Trial Card {purpose} code"
    body = f"""
    <p>Your {_e(purpose.lower())} code is <b style="font-size:18px">{_e(otp)}</b>.</p>
    <p>It expires in {minutes} minutes. Ignore this mail if you did not ask for it.</p>
    """
    return send_mail(to, subject, body, cc=[])


# ----------------------------
# Outbox: mail goes out only after the transaction commits
# ----------------------------
def queue_mail(db, fn, *args, **kwargs) -> None:
    db.info.setdefault("mail_outbox", []).append((fn, args, kwargs))


def commit_and_send(db) -> None:
    db.commit()
    outbox = db.info.pop("mail_outbox", [])
    for fn, args, kwargs in outbox:
        fn(*args, **kwargs)
