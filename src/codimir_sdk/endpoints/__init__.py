from .tickets import TICKETS_PATH, TicketsApi

__all__ = ["TicketsApi", "TICKETS_PATH"]
