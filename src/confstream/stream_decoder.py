#!/usr/bin/env python3
"""
Incremental Server-Sent Events decoder.

The event stream is line oriented. Each line is a field of the form
"name: value" (one leading space of the value is dropped), a comment
starting with ":", or blank. A blank line terminates the current frame:

    event: config
    id: 42
    data: {"settings":
    data:  {"mode": "fast"}}
    <blank>

Multiple data lines are joined with a newline. Lines may end with CRLF, LF
or CR. Chunks arrive with arbitrary boundaries, so partial lines (including
split multi-byte UTF-8 sequences) are kept in a byte buffer until their
terminator arrives. Feeding a stream in any number of pieces yields the
same events as feeding it whole.

Frame size is bounded by max_event_size to prevent memory exhaustion from a
stream that never terminates its lines or frames.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from confstream.errors import ProtocolError
from confstream.listener_constants import MAX_EVENT_SIZE

logger = logging.getLogger(__name__)

# UTF-8 byte order mark, dropped once at the start of a stream.
_BOM: bytes = b"\xef\xbb\xbf"

_CR: int = 0x0D
_LF: int = 0x0A


@dataclass(frozen=True)
class RawEvent:
    """
    One complete frame from the event stream.

    Attributes:
        data: Data lines joined with "\\n", or "" if the frame had none.
        event_type: Value of the event field, or None if absent.
        id: Value of the id field, or None if absent.
        retry_hint: Reconnection delay in seconds from the retry field,
            or None if absent.
    """

    data: str = ""
    event_type: str | None = None
    id: str | None = None
    retry_hint: float | None = None


class StreamDecoder:
    """
    Turn byte chunks into RawEvents.

    A decoder holds the state of a single connection. Use a fresh decoder
    (or call reset()) after reconnecting.
    """

    def __init__(self, max_event_size: int = MAX_EVENT_SIZE) -> None:
        self.max_event_size = max_event_size
        self._buffer = bytearray()
        self._started = False
        self._error: ProtocolError | None = None
        self._clear_frame()

    def _clear_frame(self) -> None:
        self._event_type: str | None = None
        self._data_lines: list[str] = []
        self._event_id: str | None = None
        self._retry_hint: float | None = None
        self._has_fields = False
        self._frame_size = 0

    def reset(self) -> None:
        """Discard buffered bytes and any partially received frame."""
        self._buffer.clear()
        self._started = False
        self._error = None
        self._clear_frame()

    def feed(self, chunk: bytes) -> list[RawEvent]:
        """
        Consume a chunk and return the events it completes.

        Events completed before an oversized frame are still returned; the
        size violation is then raised by the next call to feed() or close().

        Args:
            chunk: Next bytes from the stream, of any length.

        Returns:
            Completed events in stream order, possibly empty.

        Raises:
            ProtocolError: If a frame exceeds max_event_size.
        """
        if self._error is not None:
            raise self._error
        self._buffer += chunk
        if not self._started and not self._skip_bom():
            return []

        events: list[RawEvent] = []
        try:
            for line in self._take_lines(at_eof=False):
                event = self._process_line(line)
                if event is not None:
                    events.append(event)
            self._check_size(len(self._buffer))
        except ProtocolError as e:
            self.reset()
            if not events:
                raise
            self._error = e
        return events

    def close(self) -> list[RawEvent]:
        """
        Signal end of stream.

        A trailing CR still counts as a line terminator. Any frame that was
        not terminated by a blank line is discarded.

        Returns:
            Events completed by a trailing CR, usually empty.

        Raises:
            ProtocolError: If a size violation is pending from feed().
        """
        if self._error is not None:
            error = self._error
            self.reset()
            raise error
        events: list[RawEvent] = []
        for line in self._take_lines(at_eof=True):
            event = self._process_line(line)
            if event is not None:
                events.append(event)
        if self._buffer or self._has_fields:
            logger.debug("Discarding unterminated frame at end of stream")
        self.reset()
        return events

    def _skip_bom(self) -> bool:
        """Drop a leading BOM. Returns False while more bytes are needed."""
        head = bytes(self._buffer[: len(_BOM)])
        if len(head) < len(_BOM) and _BOM.startswith(head):
            return False
        if head == _BOM:
            del self._buffer[: len(_BOM)]
        self._started = True
        return True

    def _take_lines(self, at_eof: bool) -> Iterator[bytes]:
        """Yield complete lines from the buffer, without terminators."""
        buffer = self._buffer
        while buffer:
            lf = buffer.find(_LF)
            cr = buffer.find(_CR, 0, lf if lf != -1 else len(buffer))
            if cr != -1:
                if cr == len(buffer) - 1 and not at_eof:
                    # Could be the first half of a CRLF split across chunks
                    return
                end = cr
                skip = 2 if cr + 1 < len(buffer) and buffer[cr + 1] == _LF else 1
            elif lf != -1:
                end = lf
                skip = 1
            else:
                return
            line = bytes(buffer[:end])
            del buffer[: end + skip]
            yield line

    def _process_line(self, raw: bytes) -> RawEvent | None:
        """Apply one line to the current frame. Returns an event on blank lines."""
        if not raw:
            return self._dispatch()
        self._check_size(len(raw))
        if raw[0] == ord(":"):
            return None

        line = raw.decode("utf-8", errors="replace")
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if name == "data":
            self._data_lines.append(value)
        elif name == "event":
            self._event_type = value
        elif name == "id":
            if "\0" in value:
                return None
            self._event_id = value
        elif name == "retry":
            if not (value.isascii() and value.isdigit()):
                logger.debug("Ignoring invalid retry value %r", value)
                return None
            self._retry_hint = int(value) / 1000.0
        else:
            logger.debug("Ignoring unknown field %r", name)
            return None

        self._has_fields = True
        self._frame_size += len(raw) + 1
        return None

    def _check_size(self, pending: int) -> None:
        size = self._frame_size + pending
        if size > self.max_event_size:
            raise ProtocolError(
                f"Event size {size} exceeds limit {self.max_event_size}"
            )

    def _dispatch(self) -> RawEvent | None:
        if not self._has_fields:
            self._clear_frame()
            return None
        event = RawEvent(
            data="\n".join(self._data_lines),
            event_type=self._event_type,
            id=self._event_id,
            retry_hint=self._retry_hint,
        )
        self._clear_frame()
        return event
