"""User-facing block message."""

from collections.abc import Callable

HEADER = "BLOCKED by Safety Net"
FOOTER = (
    "If this operation is truly needed, ask the user for explicit permission "
    "and have them run the command manually."
)


def _excerpt(text, max_len):
    text = " ".join(text.split())
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def format_blocked_message(
    reason: str,
    command: str | None = None,
    segment: str | None = None,
    max_len: int = 200,
    redact: Callable[[str], str] | None = None,
) -> str:
    """Build the message shown to the agent when a command is denied.

    The segment is shown only when it differs from the full command.
    *redact*, when given, is applied to command and segment text.
    """
    lines = [HEADER, "", f"Reason: {reason}"]
    if command:
        shown = redact(command) if redact else command
        lines.append(f"Command: {_excerpt(shown, max_len)}")
    if segment and segment.strip() != (command or "").strip():
        shown = redact(segment) if redact else segment
        lines.append(f"Segment: {_excerpt(shown, max_len)}")
    lines.extend(["", FOOTER])
    return "\n".join(lines)
