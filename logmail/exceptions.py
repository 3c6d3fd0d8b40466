""" Hierarquia de exceções do logmail """


class LogmailError(Exception):
    """ Base para todos os erros levantados pelo pacote """


class ConfigurationError(LogmailError):
    """ Parâmetros de conexão ausentes ou inválidos na construção do handler """


class RenderError(LogmailError):
    """ Falha ao renderizar um registro em texto ou JSON """


class BodyRenderError(RenderError):
    """ O corpo padrão em JSON não pôde ser reformatado """
    def __init__(self, text: str, detail: str):
        self.text = text
        self.detail = detail
        super().__init__(f"invalid JSON log output: {detail}")

    def __reduce__(self):
        return (self.__class__, (self.text, self.detail))


class DeliveryError(LogmailError):
    """ Erro do transporte de email (SMTP, socket ou endereço inválido) """


class DeliveryTimeoutError(DeliveryError):
    """ O envio excedeu o timeout do contexto """


class DeliveryCancelledError(DeliveryError):
    """ O contexto foi cancelado antes ou durante o envio """


class HandlerStoppedError(DeliveryError):
    """ Registro elegível para email recebido depois de ``stop()`` """
