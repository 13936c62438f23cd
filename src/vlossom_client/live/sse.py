"""
Server-sent events framing.

Implements the text/event-stream line protocol: `event:`, `data:`, `id:` and
`retry:` fields, `:` comment lines, dispatch on a blank line. Multiple data
lines are joined with newlines. An event with no data is not dispatched, and
a trailing event without its blank line is dropped.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Union

DEFAULT_EVENT = "message"


@dataclass(frozen=True)
class ServerSentEvent:
    event: str = DEFAULT_EVENT
    data: str = ""
    id: Optional[str] = None
    retry: Optional[int] = None


def parse_sse(lines: Iterable[Union[str, bytes]]) -> Iterator[ServerSentEvent]:
    """
    Turn stream lines into events.

    Args:
        lines: Lines without their terminators, e.g. Response.iter_lines().
            Bytes are read as UTF-8 whatever charset the response declares.

    Yields:
        ServerSentEvent for each complete event
    """
    event_type = ""
    data: List[str] = []
    last_id: Optional[str] = None
    retry: Optional[int] = None

    for raw in lines:
        line = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        line = line.rstrip("\r")

        if not line:
            if data:
                yield ServerSentEvent(
                    event=event_type or DEFAULT_EVENT,
                    data="\n".join(data),
                    id=last_id,
                    retry=retry,
                )
            event_type = ""
            data = []
            retry = None
            continue

        if line.startswith(":"):
            continue

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if name == "event":
            event_type = value
        elif name == "data":
            data.append(value)
        elif name == "id":
            # NUL in an id is ignored per the event-stream format
            if "\0" not in value:
                last_id = value
        elif name == "retry":
            if value.isdigit():
                retry = int(value)
