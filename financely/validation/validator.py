"""
Form Validation

DESIGN DECISION: Every form is checked before anything is sent to a
collaborator. A rejected form never reaches the auth provider or the
document store.

Three forms are validated:
- sign-up (full name, email, password, confirmation)
- sign-in (email, password)
- transaction (name, amount, type, category, date)

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the user can correct the form, which keeps its state.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from financely.config import get_settings
from financely.models.feedback import ValidationIssue, ValidationResult
from financely.models.transaction import NewTransaction, TransactionType


AmountInput = Union[str, int, float, Decimal, None]


def parse_amount(value: AmountInput) -> Optional[Decimal]:
    """
    Parse a user-supplied amount.

    Returns None for anything that is not a finite decimal number.
    Negative values are returned as-is; callers decide whether to accept them.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return None

    text = str(value).strip()
    if not text:
        return None

    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None

    if not amount.is_finite():
        return None
    return amount


def parse_transaction_type(value: Optional[str]) -> Optional[TransactionType]:
    """Case-insensitive income/expense lookup."""
    if value is None:
        return None
    try:
        return TransactionType(str(value).strip().lower())
    except ValueError:
        return None


class FormValidator:
    """
    Validates the app's forms.

    Stateless apart from the password rule read from settings.
    """

    def __init__(self, min_password_length: Optional[int] = None):
        """
        Initialize validator.

        Args:
            min_password_length: Overrides the configured minimum.
                                 If None, AppSettings.min_password_length is used.
        """
        if min_password_length is None:
            min_password_length = get_settings().app.min_password_length
        self._min_password_length = min_password_length

    @property
    def min_password_length(self) -> int:
        return self._min_password_length

    def _require(
        self,
        issues: list[ValidationIssue],
        field: str,
        value: Optional[str],
        label: str,
    ) -> None:
        if value is None or not str(value).strip():
            issues.append(ValidationIssue(
                field=field,
                issue_type="missing",
                message=f"{label} is required",
            ))

    def validate_sign_up(
        self,
        full_name: str,
        email: str,
        password: str,
        confirm_password: str,
    ) -> ValidationResult:
        """
        Check the sign-up form.

        Password mismatch is reported before the length rule, so the user
        sees "Passwords do not match!" first when both apply.
        """
        issues: list[ValidationIssue] = []

        self._require(issues, "full_name", full_name, "Full name")
        self._require(issues, "email", email, "Email")
        self._require(issues, "password", password, "Password")

        if password and password != confirm_password:
            issues.append(ValidationIssue(
                field="confirm_password",
                issue_type="mismatch",
                message="Passwords do not match!",
            ))

        if password and len(password) < self._min_password_length:
            issues.append(ValidationIssue(
                field="password",
                issue_type="too_short",
                message=(
                    f"Password must be at least "
                    f"{self._min_password_length} characters!"
                ),
            ))

        return ValidationResult(form="sign_up", issues=issues)

    def validate_sign_in(self, email: str, password: str) -> ValidationResult:
        """Check the sign-in form (presence only)."""
        issues: list[ValidationIssue] = []

        self._require(issues, "email", email, "Email")
        self._require(issues, "password", password, "Password")

        return ValidationResult(form="sign_in", issues=issues)

    def validate_transaction(
        self,
        name: Optional[str],
        amount: AmountInput,
        transaction_type: Optional[str],
        category: Optional[str],
        transaction_date: Optional[date],
    ) -> tuple[ValidationResult, Optional[NewTransaction]]:
        """
        Check the add-transaction form.

        Returns:
            (result, transaction) - transaction is None unless result is valid
        """
        issues: list[ValidationIssue] = []

        self._require(issues, "name", name, "Name")

        parsed_amount = parse_amount(amount)
        if amount is None or (isinstance(amount, str) and not amount.strip()):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
            ))
        elif parsed_amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be a number",
            ))
        elif parsed_amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount cannot be negative",
            ))

        parsed_type = parse_transaction_type(transaction_type)
        if parsed_type is None:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message="Type must be income or expense",
            ))

        self._require(issues, "category", category, "Category")

        if transaction_date is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Date is required",
            ))

        result = ValidationResult(form="transaction", issues=issues)
        if result.has_errors:
            return result, None

        transaction = NewTransaction(
            name=name,
            amount=parsed_amount,
            type=parsed_type,
            category=category,
            date=transaction_date,
        )
        return result, transaction
