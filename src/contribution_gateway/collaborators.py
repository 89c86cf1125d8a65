"""Interfaces to systems outside the gateway core.

The contribution platform supplies the concrete implementations; the core
only needs to cancel a local recurring-contribution record and build the URL a
payer is bounced back to.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from urllib.parse import urlencode

from contribution_gateway.config import RoutingSettings, settings

# Terminal status code the platform uses for a cancelled recurring contribution
CANCELLED_STATUS_ID = 3


class RecurringContributionRecords(ABC):
    """Local recurring-contribution records owned by the contribution platform."""

    @abstractmethod
    def cancel_by_invoice_id(self, invoice_id: str, cancelled_at: datetime) -> None:
        """
        Mark the recurring contribution for ``invoice_id`` as cancelled.

        Implementations set the cancellation timestamp and the terminal
        status ``CANCELLED_STATUS_ID``.
        """


class Router(ABC):
    """Builds site URLs for redirects."""

    @abstractmethod
    def build_url(self, route: str, query: dict[str, str]) -> str:
        """Return an absolute URL for ``route`` with ``query`` encoded."""


class UrlRouter(Router):
    """Router over a fixed site base URL."""

    def __init__(self, routing: RoutingSettings | None = None) -> None:
        self.routing = routing or settings.routing

    def build_url(self, route: str, query: dict[str, str]) -> str:
        base = self.routing.site_base_url.rstrip("/")
        url = f"{base}/{route.lstrip('/')}"
        if query:
            url = f"{url}?{urlencode(query)}"
        return url
