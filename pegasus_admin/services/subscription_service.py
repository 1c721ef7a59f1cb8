from __future__ import annotations

import calendar
import logging
from datetime import date
from typing import Optional

from pegasus_admin.models import LICENSE_MONTHLY, User
from pegasus_admin.services.transaction import transaction

logger = logging.getLogger(__name__)

MAX_RENEWAL_MONTHS = 36


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _parse_expiry(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.warning("Ignoring unparseable expiry_time %r", value)
        return None


def renew_subscription(user: User, months: int, today: Optional[date] = None) -> str:
    """
    Switch a user to a monthly license and extend its expiry.

    The extension starts from the current expiry when it is still in the
    future, otherwise from today. Returns the new expiry as an ISO date.
    """
    if isinstance(months, bool) or not isinstance(months, int):
        raise ValueError("months must be an integer")
    if not 1 <= months <= MAX_RENEWAL_MONTHS:
        raise ValueError(f"months must be between 1 and {MAX_RENEWAL_MONTHS}")

    today = today or date.today()
    current_expiry = _parse_expiry(user.expiry_time)
    start = current_expiry if current_expiry and current_expiry > today else today
    new_expiry = add_months(start, months).isoformat()

    with transaction():
        user.user_type = LICENSE_MONTHLY
        user.expiry_time = new_expiry

    logger.info("Renewed user %s for %d months until %s", user.id, months, new_expiry)
    return new_expiry
