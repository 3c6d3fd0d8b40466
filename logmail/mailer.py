""" Adaptador de envio de emails em texto puro via SMTP

Cada envio abre a própria sessão SMTP, portanto o mesmo ``Mailer`` pode ser
chamado ao mesmo tempo pelo caminho síncrono e pelo worker da fila.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from email.message import EmailMessage
from email.utils import parseaddr
from typing import Sequence

import aiosmtplib
import structlog

from .context import Context
from .exceptions import ConfigurationError, DeliveryCancelledError, DeliveryError, DeliveryTimeoutError
from .options import SMTPConnectionInfo

logger = structlog.get_logger("logmail.mailer")

#Intervalo de verificação do cancelamento durante um envio
_CANCEL_POLL_INTERVAL = 0.05


def _check_address(addr: str) -> str:
    _, parsed = parseaddr(addr or "")
    if not parsed or "@" not in parsed:
        raise DeliveryError(f"invalid email address: {addr!r}")
    return addr


def _single_line(value: str) -> str:
    #Quebras de linha no cabeçalho encerrariam o bloco de headers
    return " ".join((value or "").splitlines()).strip()


def run_sync(coro):
    """ Executa uma coroutine a partir de código síncrono

    Sem loop em execução usa ``asyncio.run``; dentro de um loop (log emitido
    por código assíncrono) roda em uma thread auxiliar com loop próprio.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    with ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


class Mailer:
    """ Envia mensagens em texto puro usando aiosmtplib """
    def __init__(self, host: str, port: int, username: str | None = None, password: str | None = None, *,
                 start_tls: bool | None = None, use_tls: bool = False, timeout: float = 10.0) -> None:
        if not host:
            raise ConfigurationError("SMTP host is required")
        if not 0 < int(port) < 65536:
            raise ConfigurationError(f"invalid SMTP port: {port}")
        if timeout <= 0:
            raise ConfigurationError(f"invalid SMTP timeout: {timeout}")

        self.host = host
        self.port = int(port)
        self.username = username
        self.password = password
        self.start_tls = start_tls
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_connection_info(cls, info: SMTPConnectionInfo) -> "Mailer":
        return cls(
            info.host,
            info.port,
            info.username,
            info.password,
            start_tls=info.start_tls,
            use_tls=info.use_tls,
            timeout=info.timeout,
        )

    def build_message(self, from_addr: str, to_addrs: Sequence[str], subject: str, body: str) -> EmailMessage:
        """ Valida os endereços e monta a mensagem ``text/plain`` """
        if not to_addrs:
            raise DeliveryError("at least one recipient is required")

        msg = EmailMessage()
        try:
            msg["From"] = _check_address(from_addr)
            msg["To"] = ", ".join(_check_address(addr) for addr in to_addrs)
            msg["Subject"] = _single_line(subject)
        except ValueError as exc:
            raise DeliveryError(f"invalid email header: {exc}") from exc
        msg.set_content(body)
        return msg

    def send_plaintext(self, ctx: Context | None, from_addr: str, to_addrs: Sequence[str], subject: str, body: str) -> None:
        """ Versão bloqueante de ``send_plaintext_async`` """
        return run_sync(self.send_plaintext_async(ctx, from_addr, to_addrs, subject, body))

    async def send_plaintext_async(self, ctx: Context | None, from_addr: str, to_addrs: Sequence[str], subject: str, body: str) -> None:
        """ Envia a mensagem respeitando o timeout e o cancelamento do contexto """
        ctx = ctx or Context()
        if ctx.cancelled():
            raise DeliveryCancelledError("context cancelled before send")

        msg = self.build_message(from_addr, to_addrs, subject, body)
        await self._await_with_context(ctx, self._deliver(msg))

    async def _deliver(self, msg: EmailMessage) -> None:
        smtp = aiosmtplib.SMTP(
            hostname=self.host,
            port=self.port,
            timeout=self.timeout,
            use_tls=self.use_tls,
            start_tls=self.start_tls,
        )
        sent = False
        try:
            try:
                await smtp.connect()
            except (aiosmtplib.SMTPException, OSError) as exc:
                raise DeliveryError(f"smtp connect to {self.host}:{self.port} failed: {exc}") from exc

            try:
                if self.username:
                    await smtp.login(self.username, self.password or "")
                await smtp.send_message(msg)
            except (aiosmtplib.SMTPException, OSError) as exc:
                raise DeliveryError(f"smtp send failed: {exc}") from exc
            sent = True
        finally:
            if sent:
                await self._quit(smtp)
            else:
                #Envio interrompido (erro, timeout ou cancelamento): derruba a conexão sem QUIT
                smtp.close()

    async def _quit(self, smtp: aiosmtplib.SMTP) -> None:
        try:
            await smtp.quit()
        except (aiosmtplib.SMTPException, OSError) as exc:
            #A mensagem já foi aceita
            logger.debug("smtp_quit_failed", host=self.host, error=str(exc))

    async def _await_with_context(self, ctx: Context, coro) -> None:
        task = asyncio.ensure_future(coro)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + ctx.timeout if ctx.timeout is not None else None
        try:
            while True:
                wait = _CANCEL_POLL_INTERVAL
                if deadline is not None:
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        raise DeliveryTimeoutError(f"email send exceeded {ctx.timeout}s timeout")
                    wait = min(wait, remaining)

                done, _ = await asyncio.wait({task}, timeout=wait)
                if done:
                    return task.result()
                if ctx.cancelled():
                    raise DeliveryCancelledError("context cancelled during send")
        finally:
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
