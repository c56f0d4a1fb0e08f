"""
Event Stream Models

Resources of the server-owned event chain and the protocol variants a
server generation may speak.
"""

from typing import Any, FrozenSet, Optional

from pydantic import BaseModel, Field


class EventResource(BaseModel):
    """
    One link of the event chain.

    A resource without a message but with a next pointer is a positional
    placeholder (e.g. the stream origin pointing at the first event), not a
    deliverable event. A resource without next is the current head.
    """

    type: Optional[str] = None
    message: Any = None
    next: Optional[str] = None

    @property
    def is_placeholder(self) -> bool:
        return self.message is None and self.next is not None

    @property
    def at_head(self) -> bool:
        return self.next is None


class StreamProtocol(BaseModel):
    """
    Wire conventions of the events endpoint.

    waiting_statuses signal "no event yet" and cause the same URI to be
    polled again. redirect_statuses, when paired with a Location header,
    are positional placeholders pointing at the first event.
    """

    name: str
    waiting_statuses: FrozenSet[int] = Field(default_factory=lambda: frozenset({204}))
    redirect_statuses: FrozenSet[int] = Field(default_factory=frozenset)

    class Config:
        frozen = True


# Origin answers 204 until the first event exists, then a next-only body
LINKED_PROTOCOL = StreamProtocol(
    name="linked",
    waiting_statuses=frozenset({204}),
)

# Origin answers 400 "No events exist", then 302 with a Location header
REDIRECT_PROTOCOL = StreamProtocol(
    name="redirect",
    waiting_statuses=frozenset({400}),
    redirect_statuses=frozenset({301, 302, 303, 307, 308}),
)

PROTOCOLS = {
    LINKED_PROTOCOL.name: LINKED_PROTOCOL,
    REDIRECT_PROTOCOL.name: REDIRECT_PROTOCOL,
}


def get_protocol(name: str) -> StreamProtocol:
    """Look up a protocol preset by name."""
    try:
        return PROTOCOLS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown stream protocol '{name}', expected one of: {', '.join(sorted(PROTOCOLS))}"
        ) from None
