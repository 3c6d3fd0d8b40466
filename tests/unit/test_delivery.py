import threading

import pytest
from prometheus_client import REGISTRY

from logmail.compose import EmailComposer
from logmail.context import Context
from logmail.delivery import CustomDelivery, QueuedDelivery, SyncDelivery
from logmail.exceptions import BodyRenderError, DeliveryError, HandlerStoppedError
from logmail.levels import ERROR
from logmail.records import EmailTask, Record


class DummyLogger:
    def __init__(self):
        self.errors = []

    def error(self, *a, **k):
        self.errors.append((a, k))

    def debug(self, *a, **k):
        pass


def test_sync_delivery_sends_composed_message(sender):
    delivery = SyncDelivery(EmailComposer(), sender, "bot@example.com", ["ops@example.com"])
    ctx = Context()

    delivery.deliver(ctx, Record(level=ERROR, message="m"), "level=ERROR msg=m\n")

    assert sender.calls == [{
        "ctx": ctx,
        "from": "bot@example.com",
        "to": ["ops@example.com"],
        "subject": "ERROR",
        "body": "level=ERROR msg=m\n",
    }]

def test_sync_delivery_propagates_transport_error(make_sender):
    sender = make_sender(error=DeliveryError("smtp down"))
    delivery = SyncDelivery(EmailComposer(), sender, "bot@example.com", ["ops@example.com"])

    with pytest.raises(DeliveryError, match="smtp down"):
        delivery.deliver(Context(), Record(level=ERROR, message="m"), "text")

def test_custom_delivery_receives_record_and_text():
    received = []
    delivery = CustomDelivery(lambda ctx, record, text: received.append((record.message, text)))

    delivery.deliver(Context(), Record(level=ERROR, message="m"), "text")

    assert received == [("m", "text")]

def test_queued_delivery_sends_in_enqueue_order(sender):
    delivery = QueuedDelivery(EmailComposer(get_subject=lambda c, r, t: r.message), sender, "bot@example.com", ["ops@example.com"], capacity=5)

    for i in range(5):
        delivery.deliver(Context(), Record(level=ERROR, message=f"m{i}"), "text")
    delivery.close()

    assert sender.subjects == ["m0", "m1", "m2", "m3", "m4"]
    assert delivery.running is False

def test_queued_delivery_surfaces_body_errors_to_caller(sender):
    delivery = QueuedDelivery(EmailComposer(json_format=True), sender, "bot@example.com", ["ops@example.com"])

    with pytest.raises(BodyRenderError):
        delivery.deliver(Context(), Record(level=ERROR, message="m"), "not json")
    delivery.close()

    assert sender.calls == []

def test_queued_delivery_worker_ignores_caller_cancellation(sender):
    delivery = QueuedDelivery(EmailComposer(), sender, "bot@example.com", ["ops@example.com"])
    ctx = Context()
    ctx.cancel()

    delivery.deliver(ctx, Record(level=ERROR, message="m"), "text")
    delivery.close()

    assert sender.calls[0]["ctx"].cancelled() is False

def test_queued_delivery_reports_errors_to_callback(make_sender):
    sender = make_sender(error=DeliveryError("smtp down"))
    failures = []
    delivery = QueuedDelivery(EmailComposer(), sender, "bot@example.com", ["ops@example.com"],
                              on_error=lambda task, exc: failures.append((task, exc)))

    delivery.deliver(Context(), Record(level=ERROR, message="m"), "text")
    delivery.close()

    task, exc = failures[0]
    assert isinstance(task, EmailTask)
    assert task.rendered_text == "text"
    assert str(exc) == "smtp down"

def test_queued_delivery_logs_errors_without_callback(monkeypatch, make_sender):
    dummy = DummyLogger()
    monkeypatch.setattr("logmail.delivery.logger", dummy)
    delivery = QueuedDelivery(EmailComposer(), make_sender(error=DeliveryError("smtp down")), "bot@example.com", ["ops@example.com"])

    delivery.deliver(Context(), Record(level=ERROR, message="m"), "text")
    delivery.close()

    assert dummy.errors and dummy.errors[0][0] == ("email_delivery_failed",)
    assert dummy.errors[0][1]["error"] == "smtp down"

def test_queued_delivery_survives_failing_callback(monkeypatch, make_sender):
    dummy = DummyLogger()
    monkeypatch.setattr("logmail.delivery.logger", dummy)

    def on_error(task, exc):
        raise RuntimeError("callback broke")

    sender = make_sender(error=DeliveryError("smtp down"))
    delivery = QueuedDelivery(EmailComposer(), sender, "bot@example.com", ["ops@example.com"], capacity=2, on_error=on_error)

    delivery.deliver(Context(), Record(level=ERROR, message="a"), "text")
    delivery.deliver(Context(), Record(level=ERROR, message="b"), "text")
    delivery.close()

    assert len(sender.calls) == 2
    assert [e[0][0] for e in dummy.errors] == ["email_error_callback_failed", "email_error_callback_failed"]

def test_queued_delivery_rejects_after_close(sender):
    delivery = QueuedDelivery(EmailComposer(), sender, "bot@example.com", ["ops@example.com"])
    delivery.close()

    with pytest.raises(HandlerStoppedError):
        delivery.deliver(Context(), Record(level=ERROR, message="m"), "text")

    assert sender.calls == []

def test_queued_delivery_close_from_worker_does_not_deadlock(sender):
    holder = {}
    closed = threading.Event()

    def on_error(task, exc):
        holder["delivery"].close()
        closed.set()

    failing = type(sender)(error=DeliveryError("boom"))
    delivery = QueuedDelivery(EmailComposer(), failing, "bot@example.com", ["ops@example.com"], on_error=on_error)
    holder["delivery"] = delivery

    delivery.deliver(Context(), Record(level=ERROR, message="m"), "text")

    assert closed.wait(2) is True
    delivery.close()

def _sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_custom_delivery_counts_dispatches_not_sends():
    dispatched = _sample("logmail_emails_dispatched_total", mode="custom", success="True")
    sent = _sample("logmail_emails_sent_total", mode="custom", success="True")
    delivery = CustomDelivery(lambda ctx, record, text: None)

    delivery.deliver(Context(), Record(level=ERROR, message="m"), "text")

    assert _sample("logmail_emails_dispatched_total", mode="custom", success="True") == dispatched + 1
    assert _sample("logmail_emails_sent_total", mode="custom", success="True") == sent

def test_sync_delivery_counts_sends(sender):
    sent = _sample("logmail_emails_sent_total", mode="sync", success="True")
    delivery = SyncDelivery(EmailComposer(), sender, "bot@example.com", ["ops@example.com"])

    delivery.deliver(Context(), Record(level=ERROR, message="m"), "text")

    assert _sample("logmail_emails_sent_total", mode="sync", success="True") == sent + 1

def test_queued_deliveries_get_distinct_queue_names(sender):
    first = QueuedDelivery(EmailComposer(), sender, "bot@example.com", ["ops@example.com"])
    second = QueuedDelivery(EmailComposer(), sender, "bot@example.com", ["ops@example.com"])
    named = QueuedDelivery(EmailComposer(), sender, "bot@example.com", ["ops@example.com"], name="alerts")
    for delivery in (first, second, named):
        delivery.close()

    assert first.queue.name != second.queue.name
    assert named.queue.name == "alerts"
