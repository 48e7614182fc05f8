"""
   批量换图流水线的异常类型。
   路由层按类型翻译成 HTTP 状态码：校验 400 / 找不到 404 / 状态冲突 409。
"""

class ImageUpdateError(Exception):
    """Base for all image update pipeline errors."""

class ImageUpdateValidationError(ImageUpdateError):
    """Caller input is missing or malformed."""

class EmptyCSVError(ImageUpdateValidationError):
    """CSV text has no non-blank lines."""

    def __init__(self, message: str = "CSV file is empty") -> None:
        super().__init__(message)

class MultipartBoundaryError(ImageUpdateValidationError):
    """Could not determine the multipart boundary of an upload."""

    def __init__(self, message: str = "Could not find multipart boundary") -> None:
        super().__init__(message)

class MultipartCSVNotFoundError(ImageUpdateValidationError):
    """Multipart upload carries no CSV part."""

    def __init__(self, message: str = "No CSV file found in upload") -> None:
        super().__init__(message)

class OperationNotFoundError(ImageUpdateError):
    """No operation stored under the requested id."""

    def __init__(self, operation_id: str) -> None:
        self.operation_id = operation_id
        super().__init__(f"Operation not found: {operation_id}")

class OperationStateError(ImageUpdateError):
    """Operation is not in a state that allows the requested action."""

class InvalidStatusTransitionError(OperationStateError):
    """Requested status change is not an allowed lifecycle edge."""
