""" Carrega a configuração de email a partir de variáveis de ambiente

Permite montar ``EmailOptions`` sem repetir parâmetros SMTP no código da
aplicação; todas as variáveis usam o prefixo ``LOGMAIL_``.
"""

import os
from dotenv import load_dotenv
from pydantic import ConfigDict
from pydantic_settings import BaseSettings

from .options import AsyncEmailOptions, EmailOptions, SMTPConnectionInfo


#Carrega as variáveis do arquivo .env
load_dotenv()

__all__ = ["MailSettings", "settings"]


def _optional_bool(value: str | None) -> bool | None:
    if value is None or value == "":
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


class MailSettings(BaseSettings):
    """ Parâmetros SMTP e de roteamento dos emails de log """
    #Servidor SMTP
    SMTP_HOST: str | None = os.getenv("LOGMAIL_SMTP_HOST")
    SMTP_PORT: int = int(os.getenv("LOGMAIL_SMTP_PORT", "587"))
    SMTP_USERNAME: str | None = os.getenv("LOGMAIL_SMTP_USERNAME")
    SMTP_PASSWORD: str | None = os.getenv("LOGMAIL_SMTP_PASSWORD")
    SMTP_START_TLS: bool | None = _optional_bool(os.getenv("LOGMAIL_SMTP_START_TLS"))
    SMTP_USE_TLS: bool = os.getenv("LOGMAIL_SMTP_USE_TLS", "0") == "1"
    SMTP_TIMEOUT: float = float(os.getenv("LOGMAIL_SMTP_TIMEOUT", "10"))

    #Remetente e destinatários (separados por vírgula)
    FROM: str = os.getenv("LOGMAIL_FROM", "")
    TO: str = os.getenv("LOGMAIL_TO", "")

    #Nível mínimo de envio, formato e capacidade da fila
    LEVEL: str = os.getenv("LOGMAIL_LEVEL", "ERROR")
    JSON: bool = os.getenv("LOGMAIL_JSON", "0") == "1"
    QUEUE_CAPACITY: int = int(os.getenv("LOGMAIL_QUEUE_CAPACITY", "1"))

    #Configurações extras do Pydantic
    model_config = ConfigDict(
        env_prefix="LOGMAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def recipients(self) -> list[str]:
        """ Lista de destinatários sem entradas vazias """
        return [addr.strip() for addr in self.TO.split(",") if addr.strip()]

    def connection_info(self) -> SMTPConnectionInfo | None:
        """ ``None`` quando não há servidor SMTP configurado """
        if not self.SMTP_HOST:
            return None
        return SMTPConnectionInfo(
            host=self.SMTP_HOST,
            port=self.SMTP_PORT,
            username=self.SMTP_USERNAME,
            password=self.SMTP_PASSWORD,
            start_tls=self.SMTP_START_TLS,
            use_tls=self.SMTP_USE_TLS,
            timeout=self.SMTP_TIMEOUT,
        )

    def email_options(self, **overrides) -> EmailOptions:
        """ Monta ``EmailOptions``; ``overrides`` substitui qualquer campo """
        return EmailOptions(**{**self._base_options(), **overrides})

    def async_email_options(self, **overrides) -> AsyncEmailOptions:
        params = {**self._base_options(), "queue_capacity": self.QUEUE_CAPACITY}
        return AsyncEmailOptions(**{**params, **overrides})

    def _base_options(self) -> dict:
        return {
            "from_addr": self.FROM,
            "to_addrs": self.recipients,
            "json_format": self.JSON,
            "level": self.LEVEL,
            "connection_info": self.connection_info(),
        }


#Instância única de settings para a aplicação
settings = MailSettings()
