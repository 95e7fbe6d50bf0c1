from __future__ import annotations


class OrderDeskError(Exception):
    """Base for every error the services surface to the UI layer.

    `message` is safe to show to the user as-is.
    """

    default_message = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(OrderDeskError):
    default_message = "Invalid input."


class EmptyOrder(ValidationFailed):
    default_message = "Please add at least one product to the order."


class DuplicateKey(OrderDeskError):
    default_message = "A record with this key already exists."


class IdGenerationExhausted(OrderDeskError):
    default_message = "Could not generate a unique number. Please try again later."


class RecordNotFound(OrderDeskError):
    default_message = "Record not found."


class AuthFailed(OrderDeskError):
    default_message = "Invalid username or password."


class StorageError(OrderDeskError):
    default_message = "The database operation failed."


class StorageUnavailable(StorageError):
    default_message = "The database could not be opened."


__all__ = [
    "OrderDeskError",
    "ValidationFailed",
    "EmptyOrder",
    "DuplicateKey",
    "IdGenerationExhausted",
    "RecordNotFound",
    "AuthFailed",
    "StorageError",
    "StorageUnavailable",
]
