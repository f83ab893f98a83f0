from .event import Event, EventOccurrence
from .ticket import Order, OrderItem, Ticket, TicketTier

__all__ = [
    "Event",
    "EventOccurrence",
    "Order",
    "OrderItem",
    "Ticket",
    "TicketTier",
]
