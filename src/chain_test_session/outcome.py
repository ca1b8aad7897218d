"""Untyped parsing of smart contract outcomes.

Results come back as ``@``-separated hex strings, e.g. ``@6f6b@2a`` for
return code ``ok`` followed by one value (``0x2a``).
"""

import base64
import binascii
import logging
from typing import Any

from chain_test_session.models import TransactionOnNetwork

logger = logging.getLogger(__name__)

RETURN_CODE_OK = "ok"
RETURN_CODE_USER_ERROR = "user error"


def _from_hex(value: str) -> str:
    try:
        return bytes.fromhex(value).decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        return value


def _from_base64(value: str | None) -> str:
    if not value:
        return ""
    try:
        return base64.b64decode(value).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return value


def _outcome_from_data(data: str, message: str = "") -> dict[str, Any]:
    parts = data.split("@")[1:]
    return_code = _from_hex(parts[0]) if parts else ""
    return {"returnCode": return_code, "returnMessage": message, "values": parts[1:]}


def parse_untyped_outcome(transaction: TransactionOnNetwork) -> dict[str, Any]:
    """Return ``{returnCode, returnMessage, values}`` for a completed transaction.

    ``values`` stay hex-encoded; typed decoding belongs to the interactor.
    """
    for result in transaction.contract_results:
        data = result.get("data") or ""
        if data.startswith("@"):
            return _outcome_from_data(data, result.get("returnMessage", ""))

    events = list(transaction.log_events)
    for result in transaction.contract_results:
        events.extend(result.get("log_events") or [])

    for event in events:
        if event.get("identifier") == "signalError":
            topics = event.get("topics") or []
            message = _from_base64(topics[1]) if len(topics) > 1 else ""
            return {"returnCode": RETURN_CODE_USER_ERROR, "returnMessage": message, "values": []}

    for event in events:
        if event.get("identifier") in ("writeLog", "completedTxEvent"):
            data = _from_base64(event.get("data"))
            if data.startswith("@"):
                return _outcome_from_data(data)

    logger.debug("No outcome found in transaction %s", transaction.hash)
    return {"returnCode": "", "returnMessage": "", "values": []}
