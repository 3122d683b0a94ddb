from dataclasses import dataclass, field
from typing import Any, Dict, Literal

from upsnap_core.core.application.events.base_event import BaseEvent

RecordAction = Literal["create", "update", "delete"]


@dataclass(init=True, kw_only=True, frozen=True)
class RecordChangedEvent(BaseEvent):
    """
    Event fired by a record store after a record was created, updated or deleted.

    Attributes:
        action (RecordAction): The kind of mutation.
        collection (str): The collection the record belongs to.
        record (Dict[str, Any]): The record as stored after the mutation, or as it was before deletion.
    """

    action: RecordAction
    collection: str
    record: Dict[str, Any] = field(default_factory=dict)
