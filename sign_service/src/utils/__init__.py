# Внутренние модули
from sign_service.src.utils.encoding import encode_outcome
from sign_service.src.utils.invoker import SigningInvoker, create_invoker
from sign_service.src.utils.staging import StagedFile, stage_upload, staging_directory
from sign_service.src.utils.validation import ArgumentValidator
