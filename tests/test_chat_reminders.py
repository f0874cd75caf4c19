from datetime import datetime, timedelta, timezone

import pytest

from merrbio.services.chat_reminders import ChatReminderService, message_preview
from merrbio.services.email_service import EmailService


class FakeReminderSender:
    def __init__(self) -> None:
        self.sent = []
        self.failing = set()
        self.raising = set()

    def send_chat_reminder(self, to_email, sender_name, message_preview, conversation_title):
        if to_email in self.raising:
            raise RuntimeError("smtp exploded")
        if to_email in self.failing:
            return False
        self.sent.append((to_email, sender_name, message_preview, conversation_title))
        return True


@pytest.fixture
def sender():
    return FakeReminderSender()


@pytest.fixture
def reminders(persistence, sender, user_service):
    return ChatReminderService(persistence, sender, user_service, threshold_hours=6)


@pytest.fixture
def buyer(make_customer):
    return make_customer(first_name="Besa", last_name="Buyer")


@pytest.fixture
def seller(make_farmer):
    return make_farmer(first_name="Sokol", last_name="Seller")


def test_preview_truncates_long_content():
    assert message_preview("short") == "short"
    assert message_preview("a" * 100) == "a" * 100
    preview = message_preview("b" * 150)
    assert len(preview) == 100
    assert preview.endswith("...")


def test_reminder_fires_once_per_window(chat_service, reminders, sender, buyer, seller, persistence):
    conversation = chat_service.start_conversation(buyer, seller.user_id)
    message = chat_service.send_message(buyer, conversation.id, "Do you deliver to Tirana?")
    now = datetime.now(timezone.utc)

    assert reminders.run_once(now) == 0

    later = now + timedelta(hours=7)
    assert reminders.run_once(later) == 1
    seller_email = persistence.get_user_by_id(seller.user_id).email
    assert sender.sent == [
        (seller_email, "Besa Buyer", "Do you deliver to Tirana?", conversation.title)
    ]
    assert persistence.get_message(message.id).last_notification_sent is not None

    assert reminders.run_once(later) == 0
    assert reminders.run_once(later + timedelta(hours=1)) == 0

    assert reminders.run_once(later + timedelta(hours=7)) == 1
    assert len(sender.sent) == 2


def test_read_messages_are_not_reminded(chat_service, reminders, sender, buyer, seller):
    conversation = chat_service.start_conversation(buyer, seller.user_id, initial_message="Hi")
    chat_service.mark_conversation_as_read(seller, conversation.id)

    assert reminders.run_once(datetime.now(timezone.utc) + timedelta(hours=7)) == 0
    assert sender.sent == []


def test_one_failure_does_not_abort_the_sweep(
    chat_service, reminders, sender, buyer, seller, make_customer, persistence
):
    other = make_customer(first_name="Dita", last_name="Doe")
    first = chat_service.start_conversation(buyer, seller.user_id, initial_message="first")
    chat_service.start_conversation(seller, other.user_id, initial_message="second")
    third = chat_service.start_conversation(other, buyer.user_id, initial_message="third")
    sender.failing.add(persistence.get_user_by_id(seller.user_id).email)
    sender.raising.add(persistence.get_user_by_id(other.user_id).email)
    later = datetime.now(timezone.utc) + timedelta(hours=7)

    assert reminders.run_once(later) == 1
    assert [entry[2] for entry in sender.sent] == ["third"]

    failed = first.messages[0]
    assert persistence.get_message(failed.id).last_notification_sent is None
    assert persistence.get_message(third.messages[0].id).last_notification_sent is not None

    sender.failing.clear()
    sender.raising.clear()
    assert reminders.run_once(later) == 2


def test_email_reminder_subject(monkeypatch):
    delivered = []

    class FakeSMTP:
        def __init__(self, host, port):
            self.host = host

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            pass

        def login(self, username, password):
            pass

        def send_message(self, msg):
            delivered.append(msg)

    monkeypatch.setattr("merrbio.services.email_service.smtplib.SMTP", FakeSMTP)
    service = EmailService(
        smtp_host="smtp.farmmail.org",
        smtp_username="merrbio",
        smtp_password="pw",
        from_email="noreply@farmmail.org",
    )

    assert service.send_chat_reminder("ana@farmmail.org", "Sokol Seller", "Fresh eggs today", "Eggs")
    assert delivered[0]["Subject"] == "Unread message from Sokol Seller on MerrBio"
    assert delivered[0]["To"] == "ana@farmmail.org"


def test_email_failure_is_reported(monkeypatch):
    class BrokenSMTP:
        def __init__(self, host, port):
            raise OSError("connection refused")

    monkeypatch.setattr("merrbio.services.email_service.smtplib.SMTP", BrokenSMTP)
    service = EmailService(smtp_host="smtp.farmmail.org", smtp_username="u", from_email="noreply@farmmail.org")

    assert service.send_chat_reminder("ana@farmmail.org", "Sokol", "hi", "Chat") is False
