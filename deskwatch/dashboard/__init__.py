"""Read path backing the ticket dashboard."""

from .service import TicketQueryService

__all__ = ["TicketQueryService"]
