"""
Due-date computation.

Pure functions: a loan's due date is its issue date plus the loan period in
whole days, in the issue date's own timezone.  Timestamps leave the kernel in
one canonical, lexically sortable UTC form.
"""

from datetime import UTC, datetime, timedelta

from lending_kernel.exceptions import ConfigurationError


def validate_loan_period_days(loan_period_days: object) -> int:
    """
    Return ``loan_period_days`` if it is a positive integer.

    Raises:
        ConfigurationError: On zero, negative, or non-integer values.
    """
    if isinstance(loan_period_days, bool) or not isinstance(loan_period_days, int):
        raise ConfigurationError(
            "loan_period_days", f"expected an integer, got {loan_period_days!r}"
        )
    if loan_period_days <= 0:
        raise ConfigurationError(
            "loan_period_days", f"must be positive, got {loan_period_days}"
        )
    return loan_period_days


def ensure_aware(value: datetime) -> datetime:
    """Treat a naive datetime as UTC; aware values pass through unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def compute_due_date(issue_date: datetime, loan_period_days: int) -> datetime:
    """
    Compute the due date of a loan.

    A naive ``issue_date`` is taken to be UTC.  An aware one keeps its
    ``tzinfo``, so the result is in the same timezone representation.

    Example:
        >>> compute_due_date(datetime(2024, 1, 1, tzinfo=UTC), 14)
        datetime.datetime(2024, 1, 15, 0, 0, tzinfo=datetime.timezone.utc)
    """
    period = validate_loan_period_days(loan_period_days)
    return ensure_aware(issue_date) + timedelta(days=period)


def to_canonical_timestamp(value: datetime) -> str:
    """
    Render ``value`` as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC.

    Fixed width, so string order matches chronological order.
    """
    utc = ensure_aware(value).astimezone(UTC).replace(tzinfo=None)
    rendered = utc.isoformat(timespec="milliseconds")
    return f"{rendered}Z"
