class BotError(Exception):
    """Base exception for errors raised while handling a bot command."""

    def __init__(
        self,
        code: str,
        message: str,
        details: dict | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        result = {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result


class DecodeError(BotError):
    def __init__(self, message: str = "Failed to decode nvidia-smi report.", details: dict | None = None, code: str = "decode_error"):
        super().__init__(code=code, message=message, details=details)


class MalformedDocumentError(DecodeError):
    def __init__(self, message: str = "nvidia-smi output is not a well-formed XML report.", details: dict | None = None):
        super().__init__(message=message, details=details, code="malformed_document")


class ExternalToolUnavailableError(BotError):
    def __init__(self, message: str = "No nvidia-smi binary", details: dict | None = None):
        super().__init__(code="external_tool_unavailable", message=message, details=details)


class ExternalToolFailureError(BotError):
    def __init__(self, message: str = "nvidia-smi failed.", stderr: str = "", returncode: int | None = None):
        super().__init__(
            code="external_tool_failure",
            message=message,
            details={"stderr": stderr, "returncode": returncode},
        )

    @property
    def stderr(self) -> str:
        return self.details["stderr"]

    @property
    def returncode(self) -> int | None:
        return self.details["returncode"]


class TelegramApiError(BotError):
    def __init__(self, message: str = "Telegram Bot API request failed.", details: dict | None = None, code: str = "telegram_api_error"):
        super().__init__(code=code, message=message, details=details)


class DeliveryError(TelegramApiError):
    def __init__(self, message: str = "Failed to deliver message.", details: dict | None = None):
        super().__init__(message=message, details=details, code="delivery_failure")
