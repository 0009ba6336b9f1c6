from __future__ import annotations

from typing import Optional


class MenuError(Exception):
    user_message = "Something went wrong, please try again."

    def __init__(self, detail: str = "", *, user_message: Optional[str] = None) -> None:
        super().__init__(detail or self.__class__.__name__)
        if user_message is not None:
            self.user_message = user_message


class TokenNotFound(MenuError):
    user_message = "⌛ This menu has expired, please reopen it."


class MalformedRoute(TokenNotFound):
    pass


class MissingToken(TokenNotFound):
    pass


class EncodingError(MenuError):
    pass


class DecodingError(MenuError):
    pass


class IDGenerationError(MenuError):
    pass


class CollaboratorUnavailable(MenuError):
    user_message = "⚠️ Query failed, please try again."


class Unauthorized(MenuError):
    user_message = "🚫 You are not an admin of this group."


class ConfigNotFound(MenuError):
    user_message = "🔍 Configuration not found."


class InvalidInput(MenuError):
    user_message = "✏️ Invalid value, please send it again."
