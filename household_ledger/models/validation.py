"""
Validation Models

Form-level input for a transaction and the result of checking it.

DESIGN DECISION: A TransactionDraft is what a form hands over. It is
deliberately loose (everything optional, amount may still be text) so
that validation can report every problem at once instead of failing on
the first Pydantic error.
"""

from datetime import datetime
from typing import Any, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from household_ledger.errors import ValidationError
from household_ledger.models.kinds import TransactionKind, policy_for


ModelT = TypeVar("ModelT", bound=BaseModel)


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating one draft.

    Warnings never block a save; any error does.
    """

    validated_at: datetime = Field(
        default_factory=datetime.now
    )
    kind: Optional[TransactionKind] = None
    amount: Optional[float] = Field(
        default=None,
        description="Parsed amount, when it could be parsed"
    )
    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    def get_issues_summary(self) -> str:
        """One line per issue, errors first."""
        ordered = self.errors + self.warnings
        if not ordered:
            return "No issues found"
        return "\n".join(f"[{i.severity.upper()}] {i.field}: {i.message}" for i in ordered)


class TransactionDraft(BaseModel):
    """
    Unvalidated transaction input.

    Either amount or amount_text may be given; amount_text is parsed with
    the grouped-digit and 万/億 notation (see validation.amounts).
    editing_id / editing_pair_id mark an edit of an existing record or
    transfer pair.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    kind: TransactionKind
    date: datetime = Field(default_factory=datetime.now)
    amount: Optional[float] = None
    amount_text: Optional[str] = None
    memo: str = ""

    category_id: Optional[UUID] = None
    card_id: Optional[UUID] = None
    person_id: Optional[UUID] = None
    account_id: Optional[UUID] = None
    from_account_id: Optional[UUID] = None
    to_account_id: Optional[UUID] = None

    editing_id: Optional[UUID] = None
    editing_pair_id: Optional[UUID] = None

    def normalized_for_kind(self) -> "TransactionDraft":
        """
        Clear references the kind does not use.

        Mirrors what a form does when the kind picker changes: card usage
        drops every account, transfers drop the plain account and all
        tagging, other kinds drop the transfer endpoints.
        """
        policy = policy_for(self.kind)
        update: dict = {}
        if policy.uses_transfer_accounts:
            update.update(account_id=None, category_id=None, card_id=None, person_id=None)
        else:
            update.update(from_account_id=None, to_account_id=None)
            if not policy.requires_account:
                update["account_id"] = None
        return self.model_copy(update=update)


def build_model(model_cls: type[ModelT], **fields: Any) -> ModelT:
    """Construct a model, turning schema errors into a ledger ValidationError."""
    try:
        return model_cls(**fields)
    except PydanticValidationError as e:
        issues = [
            ValidationIssue(
                field=".".join(str(p) for p in err["loc"]) or model_cls.__name__,
                issue_type="invalid_value",
                message=err["msg"],
                severity="error",
            )
            for err in e.errors()
        ]
        raise ValidationError(issues[0].message if issues else str(e), issues) from e
