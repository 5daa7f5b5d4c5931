from .orders import (
    CatalogLine,
    ChargeOutcome,
    CustomLine,
    LineItem,
    NoteAttribute,
    OrderDraftPayload,
    OrderResult,
    Plan,
    SyncResult,
)

__all__ = [
    "CatalogLine",
    "ChargeOutcome",
    "CustomLine",
    "LineItem",
    "NoteAttribute",
    "OrderDraftPayload",
    "OrderResult",
    "Plan",
    "SyncResult",
]
