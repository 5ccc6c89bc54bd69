"""Tests for notice rendering and SMTP delivery."""
from __future__ import annotations

import smtplib
from datetime import date, time
from unittest.mock import MagicMock, patch

import pytest

from salonbook.errors import PermanentDispatchError, TransientDispatchError
from salonbook.extensions import db
from salonbook.models import Notification, Scheduling, User
from salonbook.notifications import (MailTransport, Notifier, OutgoingMessage,
                                     format_date_pt, get_notifier, lead_text)


@pytest.fixture
def smtp_mock():
    """Mock smtplib.SMTP as used by MailTransport."""
    with patch("salonbook.notifications.smtplib.SMTP") as mock_smtp_class:
        connection = MagicMock()
        mock_smtp_class.return_value.__enter__.return_value = connection
        yield mock_smtp_class, connection


def make_message() -> OutgoingMessage:
    return OutgoingMessage(
        recipient_id=1,
        recipient_email="olivia@example.com",
        subject="Lembrete",
        text_body="texto",
        html_body="<p>texto</p>",
        notification_type="scheduling_reminder",
        title="Lembrete de agendamento",
        summary="resumo",
    )


def test_format_date_pt() -> None:
    assert format_date_pt(date(2024, 3, 10)) == "domingo, 10 de março de 2024"
    assert format_date_pt(date(2024, 3, 11)) == "segunda-feira, 11 de março de 2024"


def test_lead_text() -> None:
    assert lead_text("24h") == "24 horas"
    assert lead_text("1h") == "1 hora"


def test_reminder_renders_templates_and_stores_in_app_copy(app, seed, add_scheduling) -> None:
    scheduling_id = add_scheduling(date(2024, 3, 11), time(8, 0), client_name="Ana")

    with app.app_context():
        scheduling = db.session.get(Scheduling, scheduling_id)
        owner = db.session.get(User, seed.owner_id)

        message = Notifier().send_reminder(scheduling, "1h", owner)

        assert message.subject == "Lembrete: Seu agendamento é em 1 hora - Salões"
        assert "segunda-feira, 11 de março de 2024" in message.text_body
        assert "08:00" in message.text_body
        assert "Ana" in message.html_body
        assert "1 hora" in message.html_body
        assert message.reminder_type == "1h"

        stored = Notification.query.one()
        assert stored.user_id == seed.owner_id
        assert stored.scheduling_id == scheduling_id
        assert stored.notification_type == "scheduling_reminder"


def test_status_change_uses_portuguese_labels(app, seed, add_scheduling) -> None:
    scheduling_id = add_scheduling(date(2024, 3, 11), time(8, 0))

    with app.app_context():
        scheduling = db.session.get(Scheduling, scheduling_id)
        owner = db.session.get(User, seed.owner_id)

        message = Notifier().send_status_change(scheduling, "pending", "confirmed", owner)

        assert "Pendente" in message.text_body
        assert "Confirmado" in message.text_body
        assert message.notification_type == "scheduling_status_changed"


def test_recipient_without_email_is_a_permanent_failure(app, seed, add_scheduling) -> None:
    scheduling_id = add_scheduling(date(2024, 3, 11), time(8, 0))

    with app.app_context():
        scheduling = db.session.get(Scheduling, scheduling_id)
        nobody = User(user_id=77, name="Sem Email", email=None)

        with pytest.raises(PermanentDispatchError):
            Notifier().send_reminder(scheduling, "24h", nobody)

        assert Notification.query.count() == 0


def test_transport_is_built_from_config() -> None:
    assert MailTransport.from_config({"MAIL_SERVER": None}) is None

    transport = MailTransport.from_config({
        "MAIL_SERVER": "smtp.example.com",
        "MAIL_PORT": 2525,
        "MAIL_USE_TLS": False,
        "MAIL_DEFAULT_SENDER": "avisos@saloes.app",
    })

    assert transport.host == "smtp.example.com"
    assert transport.port == 2525
    assert transport.use_tls is False
    assert transport.sender == "avisos@saloes.app"


def test_get_notifier_uses_app_extension(app) -> None:
    with app.app_context():
        assert get_notifier() is app.extensions["notifier"]
        assert get_notifier().transport is None


def test_transport_sends_multipart_message(smtp_mock) -> None:
    smtp_class, connection = smtp_mock
    transport = MailTransport("smtp.example.com", username="user", password="secret")

    transport.send(make_message())

    smtp_class.assert_called_once_with("smtp.example.com", 587, timeout=10)
    connection.starttls.assert_called_once()
    connection.login.assert_called_once_with("user", "secret")
    sent = connection.send_message.call_args[0][0]
    assert sent["To"] == "olivia@example.com"
    assert sent["Subject"] == "Lembrete"
    assert sent.is_multipart()


@pytest.mark.parametrize(
    "error, expected",
    [
        (smtplib.SMTPRecipientsRefused({"olivia@example.com": (550, b"no such user")}), PermanentDispatchError),
        (smtplib.SMTPRecipientsRefused({"olivia@example.com": (450, b"mailbox busy")}), TransientDispatchError),
        (smtplib.SMTPDataError(554, b"rejected"), PermanentDispatchError),
        (smtplib.SMTPDataError(451, b"try later"), TransientDispatchError),
        (smtplib.SMTPServerDisconnected("gone"), TransientDispatchError),
        (TimeoutError("timed out"), TransientDispatchError),
    ],
)
def test_transport_classifies_smtp_errors(smtp_mock, error, expected) -> None:
    _, connection = smtp_mock
    connection.send_message.side_effect = error

    with pytest.raises(expected):
        MailTransport("smtp.example.com", use_tls=False).send(make_message())


def test_connect_error_is_transient() -> None:
    with patch("salonbook.notifications.smtplib.SMTP", side_effect=smtplib.SMTPConnectError(421, b"busy")):
        with pytest.raises(TransientDispatchError):
            MailTransport("smtp.example.com").send(make_message())
