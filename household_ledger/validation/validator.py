"""
Kind-driven Transaction Validation

DESIGN DECISION: Which references a transaction needs is decided by its
kind, read from the kind policy table:

- expense, income, carryOver, balance: an account
- cardUsage: a card
- cardPayment: an account AND a card
- transfer: distinct source and destination accounts

The amount must parse and be greater than zero for every kind, and the
memo must fit in a stored record.

Validation NEVER silently fixes input. It reports every issue at once;
ensure_valid() turns errors into a ValidationError that blocks the save.
Warnings (a very large amount, a transfer memo that will lose legacy
annotations) are reported but do not block.
"""

import math
from typing import Optional

from household_ledger.config import get_settings
from household_ledger.errors import ValidationError
from household_ledger.ledger.index import EntityDirectory
from household_ledger.ledger.transfers import check_transfer, has_legacy_memo_tokens
from household_ledger.models.entities import MEMO_MAX_LENGTH
from household_ledger.models.kinds import policy_for
from household_ledger.models.validation import (
    TransactionDraft,
    ValidationIssue,
    ValidationResult,
)
from household_ledger.validation.amounts import format_amount, parse_amount


class TransactionValidator:
    """
    Validates transaction drafts before they reach the store.

    With a directory, references are also checked for existence;
    without one, only presence is checked.
    """

    def __init__(
        self,
        directory: Optional[EntityDirectory] = None,
        large_amount_warning: Optional[float] = None,
    ):
        self._directory = directory
        if large_amount_warning is None:
            large_amount_warning = get_settings().app.large_amount_warning
        self._large_amount_warning = large_amount_warning

    def resolve_amount(self, draft: TransactionDraft) -> Optional[float]:
        """Explicit amount wins over amount_text."""
        if draft.amount is not None:
            return draft.amount
        return parse_amount(draft.amount_text)

    def _validate_amount(self, amount: Optional[float], draft: TransactionDraft) -> list[ValidationIssue]:
        issues = []
        if amount is None:
            if draft.amount_text:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_format",
                    message=f"Could not read an amount from '{draft.amount_text}'",
                    severity="error",
                    suggested_fix="Use digits, optionally with 万 or 億 (e.g. 1万2000)",
                ))
            else:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                ))
        elif not math.isfinite(amount) or amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))
        elif amount >= self._large_amount_warning:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount {format_amount(amount)} is unusually large",
                severity="warning",
                suggested_fix="Check for an extra digit or a misplaced 万/億",
            ))
        return issues

    def _validate_references(self, draft: TransactionDraft) -> list[ValidationIssue]:
        policy = policy_for(draft.kind)
        issues = []

        if policy.uses_transfer_accounts:
            # Amount problems are reported by _validate_amount
            issues.extend(check_transfer(1.0, draft.from_account_id, draft.to_account_id))
            for field in ("from_account_id", "to_account_id"):
                issues.extend(self._check_account_exists(field, getattr(draft, field)))
            return issues

        if policy.requires_account:
            if draft.account_id is None:
                issues.append(ValidationIssue(
                    field="account_id",
                    issue_type="missing",
                    message=f"{policy.label} requires an account",
                    severity="error",
                    suggested_fix="Select the account this money moves through",
                ))
            else:
                issues.extend(self._check_account_exists("account_id", draft.account_id))

        if policy.requires_card:
            if draft.card_id is None:
                issues.append(ValidationIssue(
                    field="card_id",
                    issue_type="missing",
                    message=f"{policy.label} requires a card",
                    severity="error",
                    suggested_fix="Select the credit card",
                ))
            elif self._directory is not None and not self._directory.has_card(draft.card_id):
                issues.append(ValidationIssue(
                    field="card_id",
                    issue_type="unknown_reference",
                    message="Selected card no longer exists",
                    severity="error",
                ))

        if (
            draft.category_id is not None
            and self._directory is not None
            and not self._directory.has_category(draft.category_id)
        ):
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="unknown_reference",
                message="Selected category no longer exists",
                severity="error",
            ))
        return issues

    def _check_account_exists(self, field: str, account_id) -> list[ValidationIssue]:
        if account_id is None or self._directory is None:
            return []
        if self._directory.has_account(account_id):
            return []
        return [ValidationIssue(
            field=field,
            issue_type="unknown_reference",
            message="Selected account no longer exists",
            severity="error",
        )]

    def _validate_memo(self, draft: TransactionDraft) -> list[ValidationIssue]:
        issues = []
        memo = (draft.memo or "").strip()
        if len(memo) > MEMO_MAX_LENGTH:
            issues.append(ValidationIssue(
                field="memo",
                issue_type="invalid_value",
                message=f"Memo must be at most {MEMO_MAX_LENGTH} characters",
                severity="error",
                suggested_fix="Shorten the memo",
            ))
        if (
            policy_for(draft.kind).uses_transfer_accounts
            and draft.editing_pair_id is not None
            and has_legacy_memo_tokens(memo)
        ):
            issues.append(ValidationIssue(
                field="memo",
                issue_type="will_be_modified",
                message="Legacy transfer annotations will be removed from the memo",
                severity="warning",
            ))
        return issues

    def validate(self, draft: TransactionDraft) -> ValidationResult:
        """
        Run all checks on a draft.

        References the kind does not use are ignored (the draft is
        normalized for its kind first).
        """
        draft = draft.normalized_for_kind()
        amount = self.resolve_amount(draft)

        issues = []
        issues.extend(self._validate_amount(amount, draft))
        issues.extend(self._validate_references(draft))
        issues.extend(self._validate_memo(draft))

        has_errors = any(i.severity == "error" for i in issues)
        return ValidationResult(
            kind=draft.kind,
            amount=amount,
            is_valid=not has_errors,
            issues=issues,
        )

    def ensure_valid(self, draft: TransactionDraft) -> ValidationResult:
        """
        Validate and raise on errors.

        Raises:
            ValidationError: If any error-severity issue was found
        """
        result = self.validate(draft)
        if not result.is_valid:
            raise ValidationError(result.errors[0].message, result.errors)
        return result
