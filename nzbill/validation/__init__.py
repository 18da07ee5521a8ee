"""Form input validation package."""

from nzbill.validation.validator import BillInputValidator, InputValidationError

__all__ = ["BillInputValidator", "InputValidationError"]
