"""Wire framing for the design stream.

The server writes one ``data: <json>`` line per event followed by a blank line,
the usual ``text/event-stream`` layout. The client side has to rebuild those
events from a byte stream whose chunk boundaries can fall anywhere: inside the
marker, inside the JSON body, or inside a multi-byte UTF-8 character.

``FrameDecoder`` is a small explicit state machine:

* ``ACCUMULATING_LINES``: complete lines are parsed as soon as they arrive.
* ``RECOVERING_PARTIAL``: a line did not parse as JSON, so its payload is kept
  and every following line is appended until the whole payload parses.

Each decoder belongs to exactly one stream and is not safe to share.
"""

import codecs
import json
import logging
from collections import deque
from collections.abc import Iterator
from enum import Enum

from pydantic import ValidationError

from app.core.config import settings
from app.models.design_models import StreamEvent

logger = logging.getLogger(__name__)

FRAME_MARKER = "data: "
FRAME_TERMINATOR = "\n\n"


def encode_event(event: StreamEvent) -> bytes:
    """Serialize ``event`` as a single SSE data frame.

    Events without content are not sent at all and encode to ``b""``.
    """
    if not event.content:
        logger.debug("Dropping empty %s event", event.type.value)
        return b""
    payload = json.dumps({"type": event.type.value, "content": event.content}, ensure_ascii=False)
    return f"{FRAME_MARKER}{payload}{FRAME_TERMINATOR}".encode("utf-8")


class DecoderMode(str, Enum):
    ACCUMULATING_LINES = "accumulating_lines"
    RECOVERING_PARTIAL = "recovering_partial"


class FrameDecoder:
    """Incremental decoder turning transport chunks into ``StreamEvent`` objects."""

    def __init__(self, max_partial_chars: int | None = None):
        self.mode = DecoderMode.ACCUMULATING_LINES
        self.max_partial_chars = max_partial_chars or settings.DECODER_MAX_PARTIAL_CHARS
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._line_buffer = ""
        self._partial = ""
        self._pending_lines: deque[str] = deque()

    def feed(self, chunk: bytes) -> Iterator[StreamEvent]:
        """Consume ``chunk`` and return the events it completes, in order.

        Line splitting happens immediately; the returned iterator parses the
        complete lines lazily, so it should be drained before the next call to
        keep events flowing as bytes arrive.
        """
        self._line_buffer += self._utf8.decode(chunk)
        *lines, self._line_buffer = self._line_buffer.split("\n")
        self._pending_lines.extend(lines)
        return self._drain()

    def close(self) -> None:
        """Signal end-of-stream. Incomplete trailing data is discarded."""
        self._line_buffer += self._utf8.decode(b"", final=True)
        if self._line_buffer or self._partial or self._pending_lines:
            logger.debug(
                "Discarding incomplete frame data at end of stream (%d buffered chars, %d partial chars)",
                len(self._line_buffer),
                len(self._partial),
            )
        self._line_buffer = ""
        self._partial = ""
        self._pending_lines.clear()
        self.mode = DecoderMode.ACCUMULATING_LINES

    def _drain(self) -> Iterator[StreamEvent]:
        while self._pending_lines:
            event = self._process_line(self._pending_lines.popleft())
            if event is not None:
                yield event

    def _process_line(self, line: str) -> StreamEvent | None:
        line = line.rstrip("\r")

        if self.mode is DecoderMode.RECOVERING_PARTIAL:
            return self._continue_partial(line)

        if not line or not line.startswith(FRAME_MARKER):
            return None

        payload = line[len(FRAME_MARKER) :]
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            logger.debug("Frame payload is not complete JSON yet, buffering %d chars", len(payload))
            self.mode = DecoderMode.RECOVERING_PARTIAL
            self._append_partial(payload)
            return None
        return self._to_event(data)

    def _continue_partial(self, line: str) -> StreamEvent | None:
        fragment = line[len(FRAME_MARKER) :] if line.startswith(FRAME_MARKER) else line
        self._append_partial(fragment)
        if self.mode is DecoderMode.ACCUMULATING_LINES:
            # accumulator hit the cap and was dropped; start over from this line
            return self._process_line(line)

        try:
            data = json.loads(self._partial)
        except json.JSONDecodeError:
            pass
        else:
            self._reset_partial()
            return self._to_event(data)

        # A complete frame on its own means the buffered payload can never resolve
        if line.startswith(FRAME_MARKER):
            try:
                data = json.loads(fragment)
            except json.JSONDecodeError:
                pass
            else:
                logger.warning("Dropping unresolvable partial frame (%d chars)", len(self._partial) - len(fragment))
                self._reset_partial()
                return self._to_event(data)

        return None

    def _append_partial(self, fragment: str) -> None:
        self._partial += fragment
        if len(self._partial) > self.max_partial_chars:
            logger.warning("Dropping partial frame exceeding %d chars", self.max_partial_chars)
            self._reset_partial()

    def _reset_partial(self) -> None:
        self._partial = ""
        self.mode = DecoderMode.ACCUMULATING_LINES

    @staticmethod
    def _to_event(data: object) -> StreamEvent | None:
        try:
            return StreamEvent.model_validate(data)
        except ValidationError as e:
            logger.warning("Ignoring frame that is not a valid stream event: %s", e.errors(include_url=False))
            return None
