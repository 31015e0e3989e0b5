"""
Per-call state for one bridged phone call.

A CallSession is created when the telephony socket is accepted and is owned by
exactly one bridge. It carries the connection parameters, the identifiers
Twilio assigns on stream start, and the negotiation state of the call's own
OpenAI Realtime session. Nothing here is shared between calls.
"""

import enum
import logging
from typing import Dict, FrozenSet, Optional

from call_bridge.config.constants import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


class NegotiationState(enum.IntEnum):
    """Progress of the Realtime session configuration handshake."""

    CONNECTING = 0
    AWAITING_CREATED = 1
    AWAITING_UPDATED = 2
    READY = 3
    CLOSED = 4


class CallState(str, enum.Enum):
    """Coordinator view of a call, derived from the negotiation state."""

    IDLE = "idle"
    AI_CONNECTING = "ai_connecting"
    CONFIGURING = "configuring"
    READY = "ready"
    CLOSED = "closed"


# Allowed forward transitions; anything else is a regression or a skip
_TRANSITIONS: Dict[NegotiationState, FrozenSet[NegotiationState]] = {
    NegotiationState.CONNECTING: frozenset(
        {NegotiationState.AWAITING_CREATED, NegotiationState.CLOSED}
    ),
    NegotiationState.AWAITING_CREATED: frozenset(
        {NegotiationState.AWAITING_UPDATED, NegotiationState.CLOSED}
    ),
    NegotiationState.AWAITING_UPDATED: frozenset(
        {NegotiationState.READY, NegotiationState.CLOSED}
    ),
    NegotiationState.READY: frozenset({NegotiationState.CLOSED}),
    NegotiationState.CLOSED: frozenset(),
}


class CallSession:
    """
    State of a single call bridging one Twilio stream to one Realtime session.

    Attributes:
        instructions: System prompt passed on the media stream URL (may be empty)
        greeting: Opening line the AI speaks first (empty means no greeting)
        stream_sid: Twilio stream identifier, known once the start frame arrives
        call_sid: Twilio call identifier from the start frame, if present
        account_sid: Twilio account identifier from the start frame, if present
        negotiation_state: Current NegotiationState of the Realtime session
    """

    def __init__(self, instructions: str = "", greeting: str = ""):
        self.instructions = instructions
        self.greeting = greeting
        self.stream_sid: Optional[str] = None
        self.call_sid: Optional[str] = None
        self.account_sid: Optional[str] = None
        self.negotiation_state = NegotiationState.CONNECTING
        self.started = False
        self.closed = False

        # Counters reported when the call ends
        self.media_frames_received = 0
        self.audio_chunks_sent = 0
        self.audio_deltas_forwarded = 0
        self.frames_dropped = 0

    def mark_started(
        self,
        stream_sid: str,
        call_sid: Optional[str] = None,
        account_sid: Optional[str] = None,
    ) -> bool:
        """
        Record the identifiers from the start frame.

        Returns:
            bool: False if the call had already started (the frame is a duplicate)
        """
        if self.started:
            return False
        self.started = True
        self.stream_sid = stream_sid
        self.call_sid = call_sid
        self.account_sid = account_sid
        return True

    def advance(self, new_state: NegotiationState) -> bool:
        """
        Move the negotiation forward.

        Returns:
            bool: True if the transition was applied, False if it was refused
        """
        current = self.negotiation_state
        if new_state not in _TRANSITIONS[current]:
            logger.warning(
                f"Refusing negotiation transition {current.name} -> {new_state.name} "
                f"for stream: {self.stream_sid}"
            )
            return False
        self.negotiation_state = new_state
        if new_state == NegotiationState.CLOSED:
            self.closed = True
        logger.info(
            f"Negotiation {current.name} -> {new_state.name} for stream: {self.stream_sid}"
        )
        return True

    @property
    def is_ready(self) -> bool:
        return self.negotiation_state == NegotiationState.READY

    @property
    def call_state(self) -> CallState:
        if self.closed or self.negotiation_state == NegotiationState.CLOSED:
            return CallState.CLOSED
        if not self.started:
            return CallState.IDLE
        if self.negotiation_state == NegotiationState.READY:
            return CallState.READY
        if self.negotiation_state == NegotiationState.AWAITING_UPDATED:
            return CallState.CONFIGURING
        return CallState.AI_CONNECTING

    def close(self) -> None:
        """Mark the call closed, moving the negotiation to CLOSED if needed."""
        if self.negotiation_state != NegotiationState.CLOSED:
            self.advance(NegotiationState.CLOSED)
        self.closed = True
