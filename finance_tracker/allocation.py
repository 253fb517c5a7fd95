"""Fund allocation rules and the income allocation calculator.

Each user has one rule set splitting income into four buckets. A rule is
either a percentage of income or a fixed amount, optionally capped. Rule sets
are replaced whole on update; nothing checks that percentages add up to 100,
users may deliberately over- or under-allocate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from . import db
from .defaults import load_defaults
from .exceptions import AllocationValidationError

logger = logging.getLogger(__name__)

BUCKETS = db.BUCKETS
RULE_TYPES = ('percentage', 'fixed')


@dataclass(frozen=True)
class AllocationRule:
    type: str
    value: float
    cap: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], bucket: Optional[str] = None) -> 'AllocationRule':
        """Build a validated rule from ``{type, value, cap?}``."""
        if not isinstance(data, Mapping):
            raise AllocationValidationError(bucket, "rule must be an object with type and value")

        rule_type = data.get('type')
        if rule_type not in RULE_TYPES:
            raise AllocationValidationError(bucket, f"unrecognized type {rule_type!r}")

        value = _as_number(data.get('value'), bucket, 'value')
        if value < 0:
            raise AllocationValidationError(bucket, f"value must be non-negative, got {value}")
        if rule_type == 'percentage' and value > 100:
            raise AllocationValidationError(bucket, f"percentage must be between 0 and 100, got {value}")

        cap = data.get('cap')
        if cap is not None:
            cap = _as_number(cap, bucket, 'cap')
            if cap < 0:
                raise AllocationValidationError(bucket, f"cap must be non-negative, got {cap}")

        return cls(type=rule_type, value=value, cap=cap)

    def raw_amount(self, income: float) -> float:
        if self.type == 'fixed':
            return self.value
        return income * (self.value / 100)

    def amount(self, income: float) -> float:
        raw = self.raw_amount(income)
        if self.cap is not None and raw > self.cap:
            return self.cap
        return raw

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {'type': self.type, 'value': self.value}
        if self.cap is not None:
            payload['cap'] = self.cap
        return payload


@dataclass(frozen=True)
class FundAllocation:
    """A user's persisted rule set. ``is_custom`` is False until the first update."""

    user_id: str
    rules: Dict[str, AllocationRule]
    is_custom: bool = False
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'FundAllocation':
        rules = {}
        for bucket in BUCKETS:
            prefix = db.BUCKET_COLUMNS[bucket]
            cap = row.get(f"{prefix}_cap")
            rules[bucket] = AllocationRule(
                type=row[f"{prefix}_type"],
                value=float(row[f"{prefix}_value"]),
                cap=float(cap) if cap is not None else None,
            )
        return cls(
            user_id=row['user_id'],
            rules=rules,
            is_custom=bool(row.get('is_custom')),
            updated_at=row.get('updated_at'),
        )

    def compute(self, income: float, redirect_excess_to: Optional[str] = None) -> Dict[str, float]:
        return compute_allocation(self.rules, income, redirect_excess_to=redirect_excess_to)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {bucket: self.rules[bucket].to_dict() for bucket in BUCKETS}
        payload['userId'] = self.user_id
        payload['isCustom'] = self.is_custom
        return payload


def _as_number(value: Any, bucket: Optional[str], field: str) -> float:
    if isinstance(value, bool) or value is None:
        raise AllocationValidationError(bucket, f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise AllocationValidationError(bucket, f"{field} must be a number, got {value!r}") from None
    if number != number:  # NaN
        raise AllocationValidationError(bucket, f"{field} must be a number, got NaN")
    return number


def validate_rules(payload: Mapping[str, Any]) -> Dict[str, AllocationRule]:
    """Validate a full four-bucket rule set.

    Accepts either ``AllocationRule`` instances or ``{type, value, cap?}``
    mappings per bucket. All four buckets are required; unknown bucket names
    are rejected.

    Raises:
        AllocationValidationError: naming the first offending bucket
    """
    if not isinstance(payload, Mapping):
        raise AllocationValidationError(None, "allocation must map bucket names to rules")

    unknown = sorted(set(payload) - set(BUCKETS))
    if unknown:
        raise AllocationValidationError(unknown[0], "unknown bucket")

    rules: Dict[str, AllocationRule] = {}
    for bucket in BUCKETS:
        if bucket not in payload:
            raise AllocationValidationError(bucket, "missing; all four buckets must be provided")
        entry = payload[bucket]
        if isinstance(entry, AllocationRule):
            entry = entry.to_dict()
        rules[bucket] = AllocationRule.from_dict(entry, bucket)
    return rules


def default_rules() -> Dict[str, AllocationRule]:
    """The first-access rule set: 50/20/10/20 percent, no caps."""
    return validate_rules(load_defaults()['allocation'])


def compute_allocation(
    rules: Mapping[str, AllocationRule],
    income: float,
    redirect_excess_to: Optional[str] = None,
) -> Dict[str, float]:
    """Turn a rule set into bucket amounts for ``income``.

    Percentage rules take ``value`` percent of income, fixed rules take
    ``value`` regardless of income, and a cap clamps the result. Negative
    income is passed through, so percentage buckets come out negative.

    When ``redirect_excess_to`` names a bucket, whatever the caps clamped off
    the other buckets is added to it, still subject to that bucket's own cap.

    Example:
        >>> rules = {b: AllocationRule('percentage', 25) for b in BUCKETS}
        >>> compute_allocation(rules, 2000)['savings']
        500.0
    """
    if redirect_excess_to is not None and redirect_excess_to not in BUCKETS:
        raise ValueError(f"Unknown bucket '{redirect_excess_to}'")

    amounts: Dict[str, float] = {}
    excess = 0.0
    for bucket in BUCKETS:
        rule = rules[bucket]
        raw = rule.raw_amount(income)
        amount = rule.amount(income)
        amounts[bucket] = amount
        if bucket != redirect_excess_to:
            excess += raw - amount

    if redirect_excess_to is not None and excess > 0:
        target_rule = rules[redirect_excess_to]
        boosted = amounts[redirect_excess_to] + excess
        if target_rule.cap is not None and boosted > target_rule.cap:
            boosted = max(target_rule.cap, amounts[redirect_excess_to])
        amounts[redirect_excess_to] = boosted

    return amounts


def _rules_payload(rules: Mapping[str, AllocationRule]) -> Dict[str, Dict[str, Any]]:
    return {bucket: {'type': r.type, 'value': r.value, 'cap': r.cap} for bucket, r in rules.items()}


def get_allocation(user_id: str, db_path: db.PathLike = None) -> FundAllocation:
    """Return the user's rule set, creating the default on first access."""
    row = db.fetch_allocation(user_id, db_path=db_path)
    if row is None:
        created = db.insert_allocation_if_absent(user_id, _rules_payload(default_rules()), db_path=db_path)
        if created:
            logger.info("Created default fund allocation for user %s", user_id)
        else:
            logger.debug("Default fund allocation for user %s created concurrently", user_id)
        row = db.fetch_allocation(user_id, db_path=db_path)
    return FundAllocation.from_row(row)


def update_allocation(user_id: str, payload: Mapping[str, Any], db_path: db.PathLike = None) -> FundAllocation:
    """Replace the user's four bucket rules and return the stored result."""
    rules = validate_rules(payload)
    db.upsert_allocation(user_id, _rules_payload(rules), db_path=db_path)
    logger.info("Updated fund allocation for user %s", user_id)
    return FundAllocation.from_row(db.fetch_allocation(user_id, db_path=db_path))
