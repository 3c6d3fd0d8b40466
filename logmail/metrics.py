"""Métricas Prometheus do logmail

Cobre o volume de registros escritos, os envios de email por estratégia,
os emails descartados e a ocupação da fila do worker assíncrono.
"""

from prometheus_client import Counter, Gauge, Histogram

# ---------- RECORD METRICS ----------
RECORDS_WRITTEN_TOTAL = Counter(
    "logmail_records_written_total",
    "Total de registros renderizados e escritos na saída",
    ["level"],
)


# ---------- EMAIL METRICS ----------
EMAILS_SENT_TOTAL = Counter(
    "logmail_emails_sent_total",
    "Total de tentativas de envio de email",
    ["mode", "success"], #mode = sync/async
)

EMAILS_DISPATCHED_TOTAL = Counter(
    "logmail_emails_dispatched_total",
    "Total de registros repassados à função personalizada (ela decide se envia)",
    ["mode", "success"],
)

EMAIL_SEND_DURATION_SECONDS = Histogram(
    "logmail_email_send_duration_seconds",
    "Duração de cada tentativa de envio (segundos)",
    ["mode"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

EMAILS_SKIPPED_TOTAL = Counter(
    "logmail_emails_skipped_total",
    "Emails elegíveis que não foram enviados",
    ["reason"],
)


# ---------- QUEUE METRICS ----------
EMAIL_QUEUE_SIZE = Gauge(
    "logmail_email_queue_size",
    "Número de emails aguardando o worker assíncrono",
    ["queue"], #uma série por fila de handler
)
