"""
Pre-submission Validation

DESIGN DECISION: Drafts are validated locally before any network call.
A draft with errors is never sent; the caller gets every issue at once so
the user can fix them in one pass.

Checks for an expense draft:
- Description present
- Amount greater than zero
- Payer selected
- At least one split, no member split twice
- Split total equals the amount within 0.01
- Percentages add up to 100 for percentage splits
- Payer and split members belong to the group (when members are known)

IMPORTANT: Validation NEVER silently fixes issues.
"""

from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from splitly.ledger.money import SETTLE_TOLERANCE, format_amount, to_minor_units
from splitly.models.ledger import ExpenseDraft, SettlementDraft, SplitType


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning)$",
    )


class ValidationResult(BaseModel):
    """Outcome of validating one draft."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def messages(self) -> list[str]:
        return [issue.message for issue in self.issues]


class LedgerValidationError(ValueError):
    """A draft failed validation; nothing was sent to the backend."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__("; ".join(result.messages) or "Validation failed")


class ExpenseValidator:
    """
    Validates expense drafts before submission.
    """

    def __init__(self, group_member_ids: Optional[Iterable[str]] = None):
        """
        Args:
            group_member_ids: Members of the target group. If None,
                membership checks are skipped.
        """
        self._members = set(group_member_ids) if group_member_ids is not None else None

    def validate(self, draft: ExpenseDraft) -> ValidationResult:
        issues: list[ValidationIssue] = []

        if not draft.description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Please enter a description",
            ))

        if draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Please enter a valid amount",
            ))

        if not draft.paid_by:
            issues.append(ValidationIssue(
                field="paid_by",
                issue_type="missing",
                message="Please select who paid",
            ))

        if not draft.splits:
            issues.append(ValidationIssue(
                field="splits",
                issue_type="missing",
                message="Please select at least one member to split with",
            ))
            return ValidationResult(issues=issues)

        member_ids = [split.member_id for split in draft.splits]
        duplicates = sorted({m for m in member_ids if member_ids.count(m) > 1})
        if duplicates:
            issues.append(ValidationIssue(
                field="splits",
                issue_type="duplicate",
                message=f"Members appear more than once in the split: {', '.join(duplicates)}",
            ))

        if any(split.amount < 0 for split in draft.splits):
            issues.append(ValidationIssue(
                field="splits",
                issue_type="invalid_value",
                message="Split amounts cannot be negative",
            ))

        if draft.amount > 0:
            split_total = sum((split.amount for split in draft.splits), Decimal("0"))
            if abs(to_minor_units(split_total) - to_minor_units(draft.amount)) > SETTLE_TOLERANCE:
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="mismatch",
                    message=(
                        f"Custom amounts total {format_amount(split_total, draft.currency)} "
                        f"but expense is {format_amount(draft.amount, draft.currency)}"
                    ),
                ))

        if draft.split_type == SplitType.PERCENTAGE:
            percent_total = sum(
                (split.percentage or Decimal("0") for split in draft.splits),
                Decimal("0"),
            )
            if abs(percent_total - 100) > Decimal("0.01"):
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="mismatch",
                    message=f"Percentages add up to {percent_total}%, not 100%",
                ))

        if self._members is not None:
            if draft.paid_by and draft.paid_by not in self._members:
                issues.append(ValidationIssue(
                    field="paid_by",
                    issue_type="unknown_member",
                    message="The payer is not a member of this group",
                ))
            outsiders = sorted(set(member_ids) - self._members)
            if outsiders:
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="unknown_member",
                    message=f"Not members of this group: {', '.join(outsiders)}",
                ))

        return ValidationResult(issues=issues)


class SettlementValidator:
    """Validates settlement drafts before submission."""

    def validate(self, draft: SettlementDraft) -> ValidationResult:
        issues: list[ValidationIssue] = []

        if draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Please enter a valid amount",
            ))
        if not draft.from_member:
            issues.append(ValidationIssue(
                field="from_member",
                issue_type="missing",
                message="Please select who paid",
            ))
        if not draft.to_member:
            issues.append(ValidationIssue(
                field="to_member",
                issue_type="missing",
                message="Please select who was paid",
            ))
        if draft.from_member and draft.from_member == draft.to_member:
            issues.append(ValidationIssue(
                field="to_member",
                issue_type="invalid_value",
                message="A member cannot settle up with themselves",
            ))

        return ValidationResult(issues=issues)
