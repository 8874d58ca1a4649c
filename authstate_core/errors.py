"""
authstate_core.errors
---------------------
Error taxonomy shared by every layer of the session store.

- SessionValidationError: malformed input (session id, collection name,
  timestamps, credential shape). Never retried.
- DecodingError: a stored buffer could not be revived.
- StoreConnectionError: the document store was unreachable, or an operation
  still failed after the retry budget was spent.
"""

from __future__ import annotations
from typing import Optional


class SessionManagerError(Exception):
    code = "SESSION_MANAGER_ERROR"

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        if original_error is not None:
            self.__cause__ = original_error


class SessionValidationError(SessionManagerError, ValueError):
    code = "SESSION_VALIDATION_ERROR"


class DecodingError(SessionValidationError):
    code = "DECODING_ERROR"


class StoreConnectionError(SessionManagerError):
    code = "STORE_CONNECTION_ERROR"

    def __init__(
        self,
        message: str,
        original_error: Optional[BaseException] = None,
        operation: Optional[str] = None,
        attempts: int = 0,
    ):
        super().__init__(message, original_error)
        self.operation = operation
        self.attempts = attempts
