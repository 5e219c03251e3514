"""Helper functions shared by the adapters."""

from datetime import datetime, timezone
from typing import Dict, Optional, Union

from .exceptions import ValidationError, ParseError


def validate_parameters_not_blank(parameters: Dict[str, Optional[str]]) -> None:
    """
    Reject blank required arguments.

    Args:
        parameters: Mapping of human-readable parameter name to value,
            in the order they should be reported

    Raises:
        ValidationError: If any value is None, empty or whitespace only
    """
    blank = [
        name for name, value in parameters.items()
        if value is None or not str(value).strip()
    ]
    if blank:
        raise ValidationError(
            "validation failed, the following parameters are required: "
            + ", ".join(blank),
            parameters=blank,
        )


def parse_webhook_id(webhook_id: str) -> int:
    """
    Convert an opaque webhook id into the integer form the APIs expect.

    Args:
        webhook_id: Id as returned by create_webhook

    Returns:
        Integer id

    Raises:
        ParseError: If the id is not a base-10 integer
    """
    try:
        return int(str(webhook_id).strip(), 10)
    except (TypeError, ValueError) as e:
        raise ParseError(f"invalid webhook id '{webhook_id}'", details=str(e)) from e


def to_unix_timestamp(value: Union[datetime, str, None]) -> int:
    """
    Convert a platform timestamp to UTC unix seconds.

    Naive datetimes are taken as UTC. ISO-8601 strings may end in "Z".

    Args:
        value: datetime, ISO-8601 string or None

    Returns:
        Seconds since the epoch, 0 for None
    """
    if value is None or value == "":
        return 0
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.astimezone(timezone.utc).timestamp())
