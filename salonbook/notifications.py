"""Templated notices sent to establishment owners.

Every notice is rendered from ``templates/emails``, mailed over SMTP when a
mail server is configured, and stored as an in-app ``Notification`` row.
"""
from __future__ import annotations

import smtplib
from dataclasses import dataclass, field
from datetime import date
from email.message import EmailMessage
from typing import Mapping

from flask import current_app, render_template
from jinja2 import TemplateError

from .errors import PermanentDispatchError, TransientDispatchError
from .extensions import db
from .models import Notification, Scheduling, User

LEAD_TEXTS = {
    "24h": "24 horas",
    "1h": "1 hora",
}

STATUS_LABELS = {
    "pending": "Pendente",
    "confirmed": "Confirmado",
    "completed": "Concluído",
    "cancelled": "Cancelado",
}

WEEKDAYS_PT = (
    "segunda-feira",
    "terça-feira",
    "quarta-feira",
    "quinta-feira",
    "sexta-feira",
    "sábado",
    "domingo",
)

MONTHS_PT = (
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
)


def format_date_pt(value: date) -> str:
    """Format a date the way the e-mails show it, e.g. ``domingo, 10 de março de 2024``."""
    return (
        f"{WEEKDAYS_PT[value.weekday()]}, {value.day:02d} "
        f"de {MONTHS_PT[value.month - 1]} de {value.year}"
    )


def lead_text(reminder_type: str) -> str:
    return LEAD_TEXTS[reminder_type]


@dataclass
class OutgoingMessage:
    recipient_id: int
    recipient_email: str | None
    subject: str
    text_body: str
    html_body: str
    notification_type: str
    title: str
    summary: str
    scheduling: dict[str, object] = field(default_factory=dict)
    reminder_type: str | None = None
    lead_text: str | None = None


class MailTransport:
    """Minimal SMTP client; maps smtplib failures onto dispatch errors."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        sender: str = "no-reply@saloes.app",
        timeout: float = 10,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: Mapping[str, object]) -> MailTransport | None:
        host = config.get("MAIL_SERVER")
        if not host:
            return None
        return cls(
            host=str(host),
            port=int(config.get("MAIL_PORT", 587)),
            username=config.get("MAIL_USERNAME"),
            password=config.get("MAIL_PASSWORD"),
            use_tls=bool(config.get("MAIL_USE_TLS", True)),
            sender=str(config.get("MAIL_DEFAULT_SENDER", "no-reply@saloes.app")),
            timeout=float(config.get("MAIL_TIMEOUT_SECONDS", 10)),
        )

    def build(self, message: OutgoingMessage) -> EmailMessage:
        email = EmailMessage()
        email["Subject"] = message.subject
        email["From"] = self.sender
        email["To"] = message.recipient_email
        email.set_content(message.text_body)
        email.add_alternative(message.html_body, subtype="html")
        return email

    def send(self, message: OutgoingMessage) -> None:
        email = self.build(message)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(email)
        except smtplib.SMTPRecipientsRefused as exc:
            codes = [code for code, _ in exc.recipients.values()]
            if codes and all(code >= 500 for code in codes):
                raise PermanentDispatchError(f"Recipient refused: {message.recipient_email}") from exc
            raise TransientDispatchError(f"Recipient temporarily refused: {message.recipient_email}") from exc
        except smtplib.SMTPConnectError as exc:
            raise TransientDispatchError(f"Could not connect to {self.host}:{self.port}") from exc
        except smtplib.SMTPResponseException as exc:
            if exc.smtp_code >= 500:
                raise PermanentDispatchError(f"SMTP error {exc.smtp_code}") from exc
            raise TransientDispatchError(f"SMTP error {exc.smtp_code}") from exc
        except OSError as exc:
            # SMTPServerDisconnected, timeouts and socket errors land here.
            raise TransientDispatchError(str(exc) or exc.__class__.__name__) from exc


class Notifier:
    def __init__(self, transport: MailTransport | None = None) -> None:
        self.transport = transport

    def send_reminder(
        self, scheduling: Scheduling, reminder_type: str, recipient: User, commit: bool = True
    ) -> OutgoingMessage:
        """Mail a reminder and store its in-app copy.

        With ``commit=False`` the in-app row is only added to the session, so
        the caller can commit it together with its own bookkeeping.
        """
        text = lead_text(reminder_type)
        context = self._context(scheduling, recipient)
        context.update(reminder_type=reminder_type, reminder_text=text)
        message = self._render(
            "scheduling_reminder",
            context,
            recipient=recipient,
            scheduling=scheduling,
            subject=f"Lembrete: Seu agendamento é em {text} - Salões",
            notification_type="scheduling_reminder",
            title="Lembrete de agendamento",
            summary=(
                f"O agendamento de {scheduling.client_name} é em {text} "
                f"({context['scheduling_date']} às {context['scheduling_time']})."
            ),
        )
        message.reminder_type = reminder_type
        message.lead_text = text
        return self._deliver(message, commit=commit)

    def send_confirmation(self, scheduling: Scheduling, recipient: User) -> OutgoingMessage:
        context = self._context(scheduling, recipient)
        message = self._render(
            "scheduling_confirmation",
            context,
            recipient=recipient,
            scheduling=scheduling,
            subject="Agendamento Confirmado - Salões",
            notification_type="scheduling_confirmation",
            title="Novo agendamento",
            summary=(
                f"{scheduling.client_name} agendou para "
                f"{context['scheduling_date']} às {context['scheduling_time']}."
            ),
        )
        return self._deliver(message)

    def send_status_change(
        self, scheduling: Scheduling, old_status: str, new_status: str, recipient: User
    ) -> OutgoingMessage:
        context = self._context(scheduling, recipient)
        context.update(
            old_status=STATUS_LABELS.get(old_status, old_status),
            new_status=STATUS_LABELS.get(new_status, new_status),
        )
        message = self._render(
            "status_change",
            context,
            recipient=recipient,
            scheduling=scheduling,
            subject="Status do Agendamento Atualizado - Salões",
            notification_type="scheduling_status_changed",
            title="Status do agendamento atualizado",
            summary=(
                f"O agendamento de {scheduling.client_name} mudou de "
                f"{context['old_status']} para {context['new_status']}."
            ),
        )
        return self._deliver(message)

    def _context(self, scheduling: Scheduling, recipient: User) -> dict[str, object]:
        return {
            "scheduling": scheduling,
            "recipient": recipient,
            "client_name": scheduling.client_name,
            "service_name": scheduling.service.name if scheduling.service else None,
            "establishment_name": scheduling.establishment.name if scheduling.establishment else None,
            "scheduling_date": format_date_pt(scheduling.scheduled_date),
            "scheduling_time": scheduling.scheduled_time.strftime("%H:%M"),
        }

    def _render(
        self,
        template: str,
        context: dict[str, object],
        *,
        recipient: User,
        scheduling: Scheduling,
        subject: str,
        notification_type: str,
        title: str,
        summary: str,
    ) -> OutgoingMessage:
        if not recipient.email:
            raise PermanentDispatchError(f"User {recipient.user_id} has no e-mail address")
        try:
            text_body = render_template(f"emails/{template}.txt", **context)
            html_body = render_template(f"emails/{template}.html", **context)
        except TemplateError as exc:
            raise PermanentDispatchError(f"Could not render {template}: {exc}") from exc

        return OutgoingMessage(
            recipient_id=recipient.user_id,
            recipient_email=recipient.email,
            subject=subject,
            text_body=text_body,
            html_body=html_body,
            notification_type=notification_type,
            title=title,
            summary=summary,
            scheduling=scheduling.to_dict(),
        )

    def _deliver(self, message: OutgoingMessage, commit: bool = True) -> OutgoingMessage:
        if self.transport is not None:
            self.transport.send(message)
        else:
            current_app.logger.debug(
                "Mail server not configured; storing %s for user %s in-app only",
                message.notification_type,
                message.recipient_id,
            )

        db.session.add(
            Notification(
                user_id=message.recipient_id,
                scheduling_id=message.scheduling.get("id"),
                title=message.title,
                message=message.summary,
                notification_type=message.notification_type,
            )
        )
        if commit:
            db.session.commit()
        return message


def get_notifier() -> Notifier:
    """Return the notifier attached to the current app."""
    notifier = current_app.extensions.get("notifier")
    if notifier is None:
        notifier = Notifier(MailTransport.from_config(current_app.config))
        current_app.extensions["notifier"] = notifier
    return notifier
