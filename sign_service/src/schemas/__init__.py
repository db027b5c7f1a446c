# Внутренние модули
from sign_service.src.schemas.main_scheme import (
    Command, SigningRequest, VerifyRecord, VerifyStatus
)
from sign_service.src.schemas.outcomes import (
    SignSucceeded, SigningOutcome, ToolFailed, VerifyResult
)
