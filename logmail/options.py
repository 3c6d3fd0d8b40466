""" Opções de construção dos handlers

Os modelos são imutáveis e validados pelo Pydantic; a invariante principal é
que toda configuração de email precisa de uma função de envio própria ou de
parâmetros de conexão SMTP.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .levels import ERROR, INFO, parse_level

#Assinaturas das estratégias plugáveis
SendEmailFunc = Callable[[Any, str, list, str, str], None]
GetSubjectFunc = Callable[[Any, Any, str], str]
GetBodyFunc = Callable[[Any, Any, str], str]
HandleEmailFunc = Callable[[Any, Any, str], None]
ReplaceAttrFunc = Callable[[tuple, str, Any], Optional[tuple]]
ErrorCallback = Callable[[Any, BaseException], None]

__all__ = [
    "SMTPConnectionInfo",
    "HandlerOptions",
    "EmailOptions",
    "AsyncEmailOptions",
    "SendEmailFunc",
    "GetSubjectFunc",
    "GetBodyFunc",
    "HandleEmailFunc",
    "ReplaceAttrFunc",
    "ErrorCallback",
]


class SMTPConnectionInfo(BaseModel):
    """ Dados suficientes para conectar em um servidor SMTP genérico """
    model_config = ConfigDict(frozen=True)

    host: str
    port: int = 587
    username: str | None = None
    password: str | None = None
    #None deixa o aiosmtplib decidir o STARTTLS conforme o servidor
    start_tls: bool | None = None
    use_tls: bool = False
    timeout: float = 10.0


class HandlerOptions(BaseModel):
    """ Opções do renderizador base, independentes do email """
    model_config = ConfigDict(frozen=True)

    level: int = INFO
    add_source: bool = False
    replace_attr: Optional[ReplaceAttrFunc] = None

    @field_validator("level", mode="before")
    @classmethod
    def _parse_level(cls, value):
        return parse_level(value)


class EmailOptions(BaseModel):
    """ Opções específicas de email

    Se ``send_email`` não for informado, ``connection_info`` é obrigatório.
    """
    model_config = ConfigDict(frozen=True)

    from_addr: str = ""
    to_addrs: list[str] = Field(default_factory=list)
    #True = corpo em JSON indentado, False = texto
    json_format: bool = False
    #Nível mínimo para envio; pode diferir do nível do renderizador
    level: int = ERROR
    send_email: Optional[SendEmailFunc] = None
    get_subject: Optional[GetSubjectFunc] = None
    get_body: Optional[GetBodyFunc] = None
    connection_info: Optional[SMTPConnectionInfo] = None

    @field_validator("level", mode="before")
    @classmethod
    def _parse_level(cls, value):
        return parse_level(value)

    @model_validator(mode="after")
    def _check_transport(self):
        if self.send_email is None and self.connection_info is None:
            raise ValueError("either send_email or connection_info must be provided")
        return self


class AsyncEmailOptions(EmailOptions):
    """ Opções de email do handler assíncrono """
    queue_capacity: int = Field(1, ge=1)
    #Recebe (EmailTask, exceção) quando o worker falha no envio
    on_error: Optional[ErrorCallback] = None
    #Label da fila na métrica logmail_email_queue_size; gerado quando omitido
    queue_name: Optional[str] = None
