'''
Classifies raw payments into the recurring-due bucket or a specific activity.

The text rule is a heuristic, not a real join, so it lives behind the
PaymentMatcher interface and can be swapped for a strict matcher later.
'''
from collections import defaultdict
from decimal import Decimal
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, computed_field

from ..common.config import settings
from ..common.logger import log
from ..models.enums import MatchRule, PaymentBucket
from ..models.ledger import Activity, Payment

ZERO = Decimal(0)


def normalize_text(text: Optional[str]) -> str:
    """Upper-cases, trims and collapses whitespace runs to single spaces."""
    return " ".join((text or "").upper().split())


class PaymentClassification(BaseModel):
    """Which bucket one payment landed in, and why."""
    payment_id: int
    amount: Decimal
    bucket: PaymentBucket
    rule: MatchRule
    activity_id: Optional[int] = None
    # More than one activity name matched the description. The first one won.
    ambiguous: bool = False

    model_config = ConfigDict(frozen=True)


class MatchedPayments(BaseModel):
    """Per-student payment aggregates. Each payment is counted in one bucket at most."""
    recurring_due_total: Decimal = ZERO
    activity_totals: dict[int, Decimal] = {}
    classifications: list[PaymentClassification] = []

    model_config = ConfigDict(frozen=True)

    def paid_for(self, activity_id: int) -> Decimal:
        return self.activity_totals.get(activity_id, ZERO)

    @computed_field
    @property
    def unclassified_ids(self) -> list[int]:
        return [c.payment_id for c in self.classifications if c.bucket == PaymentBucket.UNCLASSIFIED]

    @computed_field
    @property
    def ambiguous_ids(self) -> list[int]:
        return [c.payment_id for c in self.classifications if c.ambiguous]


class PaymentMatcher:
    """
    Base strategy. Subclasses decide how a single payment is classified;
    aggregation is shared so every strategy keeps the one-bucket rule.
    """
    def classify(self, payment: Payment, activities: Sequence[Activity]) -> PaymentClassification:
        raise NotImplementedError

    def match(self, payments: Sequence[Payment], activities: Sequence[Activity]) -> MatchedPayments:
        """
        Classifies every payment and sums them per bucket.
        `activities` must already be in the stable evaluation order.
        """
        recurring_due_total = ZERO
        activity_totals = defaultdict(lambda: ZERO)
        classifications = []

        for payment in payments:
            classification = self.classify(payment, activities)
            classifications.append(classification)

            if classification.bucket == PaymentBucket.RECURRING_DUE:
                recurring_due_total += payment.amount
            elif classification.bucket == PaymentBucket.ACTIVITY:
                activity_totals[classification.activity_id] += payment.amount

        return MatchedPayments(
            recurring_due_total=recurring_due_total,
            activity_totals=dict(activity_totals),
            classifications=classifications,
        )


class SubstringPaymentMatcher(PaymentMatcher):
    """
    The matching rules the treasury has always used, first match wins:
      1. a direct activity reference that points at a known activity;
      2. the description contains an activity's full name;
      3. the description contains a recurring-due marker token;
      4. otherwise the payment is left unclassified.

    When a description contains several activity names the first activity in
    evaluation order wins, and the payment is flagged as ambiguous.
    """
    def __init__(self, due_markers: Optional[Sequence[str]] = None):
        markers = settings.DUE_MARKER_TOKENS if due_markers is None else due_markers
        self.due_markers = tuple(normalize_text(m) for m in markers if normalize_text(m))

    def classify(self, payment: Payment, activities: Sequence[Activity]) -> PaymentClassification:
        # 1. Direct link. A dangling link falls through to the text rules.
        if payment.activity_id is not None:
            if any(a.id == payment.activity_id for a in activities):
                return self._to_activity(payment, payment.activity_id, MatchRule.DIRECT_REFERENCE)
            log.debug(f"Payment {payment.id} references unknown activity {payment.activity_id}.")

        description = normalize_text(payment.description)

        # 2. Activity name contained in the description.
        matches = [
            a for a in activities
            if normalize_text(a.name) and normalize_text(a.name) in description
        ]
        if matches:
            ambiguous = len(matches) > 1
            if ambiguous:
                log.debug(
                    f"Payment {payment.id} description '{payment.description}' matches "
                    f"{[a.name for a in matches]}; using '{matches[0].name}'."
                )
            return self._to_activity(payment, matches[0].id, MatchRule.ACTIVITY_NAME, ambiguous)

        # 3. Recurring-due marker.
        if any(marker in description for marker in self.due_markers):
            return PaymentClassification(
                payment_id=payment.id,
                amount=payment.amount,
                bucket=PaymentBucket.RECURRING_DUE,
                rule=MatchRule.DUE_MARKER,
            )

        # 4. Nothing matched.
        return PaymentClassification(
            payment_id=payment.id,
            amount=payment.amount,
            bucket=PaymentBucket.UNCLASSIFIED,
            rule=MatchRule.NONE,
        )

    @staticmethod
    def _to_activity(payment: Payment, activity_id: int, rule: MatchRule, ambiguous: bool = False) -> PaymentClassification:
        return PaymentClassification(
            payment_id=payment.id,
            amount=payment.amount,
            bucket=PaymentBucket.ACTIVITY,
            rule=rule,
            activity_id=activity_id,
            ambiguous=ambiguous,
        )
