"""
Variant engine errors.

Raised inside the lifecycle controller when a rule is violated. The
controller turns them into a VariantOperationResult for the caller, and the
API layer uses ``http_status`` to pick a response code.

Levels:
    warning - normal user-timing situations (an operation is already running,
              an unsaved variant exists); the UI shows them as warnings
    error   - the attempt was refused and must be corrected and resubmitted
"""
from typing import Iterable, List, Optional, Sequence


class VariantEngineError(Exception):
    code = "variant_engine_error"
    level = "error"
    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# --- Validation -------------------------------------------------------------

class VariantValidationError(VariantEngineError):
    code = "validation_error"
    http_status = 422


class DuplicateVariantError(VariantValidationError):
    code = "duplicate_variant"

    def __init__(self, conflicting_index: int, conflicting_pairs: Sequence[str]):
        self.conflicting_index = conflicting_index
        self.conflicting_pairs = list(conflicting_pairs)
        if self.conflicting_pairs:
            detail = ", ".join(self.conflicting_pairs)
            message = f"A variant with the same differentiators already exists ({detail})"
        else:
            message = "A variant without differentiator attributes already exists"
        super().__init__(message)


class InconsistentDifferentiatorsError(VariantValidationError):
    code = "inconsistent_differentiators"

    def __init__(self, missing_attributes: Iterable[str]):
        self.missing_attributes: List[str] = list(missing_attributes)
        super().__init__(
            "Differentiator attributes must match across all variants. "
            f"Missing attributes: {', '.join(self.missing_attributes)}"
        )


class ImageLimitExceededError(VariantValidationError):
    code = "image_limit_exceeded"

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Maximum {limit} images allowed per variant")


# --- State ------------------------------------------------------------------

class VariantStateError(VariantEngineError):
    code = "state_error"
    level = "warning"
    http_status = 409


class OperationInProgressError(VariantStateError):
    code = "operation_in_progress"

    def __init__(self, processing_index: Optional[int]):
        self.processing_index = processing_index
        super().__init__("Please complete the current variant operation first")


class UnsavedVariantExistsError(VariantStateError):
    code = "unsaved_variant_exists"

    def __init__(self, action: str = "adding a new one"):
        super().__init__(f"Please save the current variant before {action}")


class VariantNotFoundError(VariantStateError):
    code = "variant_not_found"
    level = "error"
    http_status = 404

    def __init__(self, variant_ref):
        self.variant_ref = variant_ref
        super().__init__(f"Variant {variant_ref} not found")


# --- Prerequisite -----------------------------------------------------------

class ProductNotPersistedError(VariantEngineError):
    code = "product_not_persisted"
    http_status = 412

    def __init__(self):
        super().__init__("Please save basic product details first")


# --- Gateway ----------------------------------------------------------------

class GatewayError(VariantEngineError):
    """Failure reported by (or while reaching) the product service."""
    code = "gateway_error"
    http_status = 502

    def __init__(self, detail: str, status_code: Optional[int] = None):
        self.detail = detail
        self.status_code = status_code
        if status_code is not None:
            self.http_status = status_code
        super().__init__(detail)
