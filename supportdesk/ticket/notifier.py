"""
Change notification for cached ticket views.

After a ticket changes, the customer's and the staff's list and detail
views are stale. The notifier is told which view keys to drop; it is fire
and forget, so callers log its failures and move on.
"""

from __future__ import annotations

from typing import Protocol

from supportdesk.core.logging import get_logger

logger = get_logger(__name__)

CUSTOMER_LIST_VIEW = "/customer/mymessages"
STAFF_LIST_VIEW = "/admin/customers/support"


class ChangeNotifier(Protocol):
    def invalidate(self, paths: set[str]) -> None: ...


class LoggingChangeNotifier:
    """Default notifier: records the invalidated views in the log."""

    def invalidate(self, paths: set[str]) -> None:
        logger.info("views_invalidated", paths=sorted(paths))


def ticket_view_keys(ticket_id: str) -> set[str]:
    return {
        f"{CUSTOMER_LIST_VIEW}/{ticket_id}",
        CUSTOMER_LIST_VIEW,
        f"{STAFF_LIST_VIEW}/{ticket_id}",
        STAFF_LIST_VIEW,
    }


_default_notifier = LoggingChangeNotifier()


def get_notifier() -> ChangeNotifier:
    return _default_notifier
