from .domain import TargetRecord
from .payloads import target_payload

PRECONDITION_CATEGORY_HAS_PRODUCTS = "category_has_products"
PRECONDITION_PRODUCT_HAS_TARGETS = "product_has_targets"
PRECONDITION_ACHIEVEMENT_EXISTS = "achievement_exists"


class TrackerError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def payload_message(self):
        return self.message

    def payload(self) -> dict:
        return {"message": self.payload_message()}


class ValidationFailed(TrackerError):
    status_code = 400

    def __init__(self, messages):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__(", ".join(self.messages))

    def payload_message(self):
        if len(self.messages) == 1:
            return self.messages[0]
        return self.messages


class NotFoundError(TrackerError):
    status_code = 404


class ConsistencyError(TrackerError):
    status_code = 409

    def __init__(self, message: str, *, precondition: str):
        super().__init__(message)
        self.precondition = precondition

    def payload(self) -> dict:
        return {**super().payload(), "precondition": self.precondition}


class PartialWriteError(TrackerError):
    """A two-step write stopped after its first step had already landed.

    ``target`` is the record as it stood after the completed step, so callers
    can show the saved state without refetching.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        completed_step: str,
        failed_step: str,
        target: TargetRecord | None = None,
    ):
        super().__init__(message)
        self.completed_step = completed_step
        self.failed_step = failed_step
        self.target = target

    def payload(self) -> dict:
        return {
            **super().payload(),
            "completed_step": self.completed_step,
            "failed_step": self.failed_step,
            "target": target_payload(self.target) if self.target else None,
        }
