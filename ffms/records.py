"""
Wire-level flag records and the parsers that guard the cache against malformed data.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

logger = logging.getLogger("ffms")


@dataclass(frozen=True)
class FlagRecord:
    """A single flag as sent by the server: ``{"name": str, "state": bool}``."""

    name: str
    state: bool

    def to_dict(self) -> dict:
        return {"name": self.name, "state": self.state}


def parse_flag_record(data: Any) -> Optional[FlagRecord]:
    """
    Build a FlagRecord from decoded JSON.

    Args:
        data: Decoded JSON value

    Returns:
        The record, or None if ``name`` is not a non-empty string or
        ``state`` is not a boolean
    """
    if not isinstance(data, dict):
        return None

    name = data.get("name")
    state = data.get("state")

    if not isinstance(name, str) or not name:
        return None
    # bool is checked by identity of type: 0/1 are not flag states
    if type(state) is not bool:
        return None

    return FlagRecord(name=name, state=state)


def parse_flag_message(message: Union[str, bytes]) -> Optional[FlagRecord]:
    """
    Parse a live-channel payload into a FlagRecord.

    Args:
        message: Raw text (or UTF-8 bytes) received on the channel

    Returns:
        The record, or None if the payload is not JSON or not a valid record
    """
    try:
        data = json.loads(message)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to parse channel message: {message!r} ({e})")
        return None

    record = parse_flag_record(data)
    if record is None:
        logger.warning(f"Invalid channel message: {message!r}")
    return record


def validate_api_response(flags: Any) -> bool:
    """
    Strictly check a bulk-fetch payload.

    Unlike the client's tolerant loading, a single bad entry fails the
    whole payload here.

    Args:
        flags: Decoded JSON body of the feature-flags endpoint

    Returns:
        True if the payload is a list of well-formed records
    """
    if not isinstance(flags, list):
        logger.error("Invalid API response: Expected an array.")
        return False

    for flag in flags:
        if parse_flag_record(flag) is None:
            logger.error(f"Invalid flag object: {json.dumps(flag, default=str)}")
            return False

    return True
