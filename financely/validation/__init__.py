"""Form validation package."""

from financely.validation.validator import (
    AmountInput,
    FormValidator,
    parse_amount,
    parse_transaction_type,
)

__all__ = ["AmountInput", "FormValidator", "parse_amount", "parse_transaction_type"]
