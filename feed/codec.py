"""
Wire Codec
==========
JSON encoding of outbound requests and decoding of inbound frames.

Outbound requests:
    {"ticks": ["frxEURUSD", ...], "subscribe": 1}
    {"forget_all": "ticks"}
    {"active_symbols": "full"}

Inbound frames are dispatched on their ``msg_type`` field:
    - "active_symbols" -> CatalogMessage
    - anything carrying error.message -> ErrorMessage
    - "tick" -> TickMessage
    - everything else -> OtherMessage

Usage:
    from feed.codec import decode, encode, subscribe_request

    text = encode(subscribe_request(["frxEURUSD"]))
    message = decode('{"msg_type": "tick", "tick": {...}}')
"""

import json
import math
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from .exceptions import ParseError
from .models import Instrument, Tick

logger = logging.getLogger(__name__)

MSG_TYPE_TICK = "tick"
MSG_TYPE_ACTIVE_SYMBOLS = "active_symbols"

# Mandatory fields of the nested tick payload
TICK_REQUIRED_FIELDS = ('symbol', 'quote', 'epoch', 'id', 'pip_size')


@dataclass(frozen=True)
class TickMessage:
    tick: Tick
    subscription_id: Optional[str] = None


@dataclass(frozen=True)
class CatalogMessage:
    instruments: List[Instrument] = field(default_factory=list)
    error: Optional[str] = None


@dataclass(frozen=True)
class ErrorMessage:
    message: str
    code: Optional[str] = None
    msg_type: Optional[str] = None


@dataclass(frozen=True)
class OtherMessage:
    msg_type: str
    payload: Dict[str, Any] = field(default_factory=dict)


InboundMessage = Union[TickMessage, CatalogMessage, ErrorMessage, OtherMessage]


# =============================================================================
# Outbound
# =============================================================================

def encode(request: Dict[str, Any]) -> str:
    """Serialize a request object to JSON text."""
    return json.dumps(request)


def subscribe_request(symbols: Iterable[str]) -> Dict[str, Any]:
    return {"ticks": list(symbols), "subscribe": 1}


def forget_all_request() -> Dict[str, Any]:
    return {"forget_all": "ticks"}


def active_symbols_request() -> Dict[str, Any]:
    return {"active_symbols": "full"}


def encode_tick(tick: Tick, subscription_id: Optional[str] = None) -> str:
    """Render a tick in the inbound wire shape."""
    payload: Dict[str, Any] = {"msg_type": MSG_TYPE_TICK, "tick": tick.to_dict()}
    if subscription_id is not None:
        payload["subscription"] = {"id": subscription_id}
    return encode(payload)


# =============================================================================
# Inbound
# =============================================================================

def decode(raw: Union[str, bytes]) -> InboundMessage:
    """
    Decode one inbound frame.

    Args:
        raw: Frame text (bytes are decoded as UTF-8)

    Returns:
        One of TickMessage, CatalogMessage, ErrorMessage, OtherMessage

    Raises:
        ParseError: Malformed JSON, non-object payload, missing msg_type,
            or a tick/catalog payload that lacks mandatory fields
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise ParseError(f"Invalid UTF-8 frame: {e}") from e

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise ParseError(f"Invalid JSON message: {e}", raw=raw) from e

    if not isinstance(data, dict):
        raise ParseError("Message is not a JSON object", raw=raw)

    msg_type = data.get('msg_type')
    if not isinstance(msg_type, str) or not msg_type:
        raise ParseError("Message has no msg_type", raw=raw)

    if msg_type == MSG_TYPE_ACTIVE_SYMBOLS:
        return _decode_catalog(data, raw)

    error = _error_fields(data)
    if error is not None:
        message, code = error
        return ErrorMessage(message=message, code=code, msg_type=msg_type)

    if msg_type == MSG_TYPE_TICK:
        return _decode_tick(data, raw)

    return OtherMessage(msg_type=msg_type, payload=data)


def _error_fields(data: Dict[str, Any]) -> Optional[tuple]:
    error = data.get('error')
    if not isinstance(error, dict):
        return None
    message = error.get('message')
    if message is None:
        return None
    code = error.get('code')
    return str(message), (str(code) if code is not None else None)


def _decode_tick(data: Dict[str, Any], raw: str) -> TickMessage:
    payload = data.get('tick')
    if not isinstance(payload, dict):
        raise ParseError("Tick message has no tick payload", raw=raw)

    missing = [name for name in TICK_REQUIRED_FIELDS if payload.get(name) is None]
    if missing:
        raise ParseError(f"Tick payload missing fields: {', '.join(missing)}", raw=raw)

    try:
        tick = Tick(
            symbol=str(payload['symbol']),
            quote=_number(payload['quote']),
            epoch=int(payload['epoch']),
            id=str(payload['id']),
            pip_size=int(payload['pip_size']),
            ask=_optional_number(payload.get('ask')),
            bid=_optional_number(payload.get('bid')),
        )
    except (TypeError, ValueError, OverflowError) as e:
        raise ParseError(f"Invalid tick payload: {e}", raw=raw) from e

    if tick.pip_size < 0:
        raise ParseError(f"Negative pip_size for {tick.symbol}", raw=raw)

    subscription = data.get('subscription')
    subscription_id = None
    if isinstance(subscription, dict) and subscription.get('id') is not None:
        subscription_id = str(subscription['id'])

    return TickMessage(tick=tick, subscription_id=subscription_id)


def _decode_catalog(data: Dict[str, Any], raw: str) -> CatalogMessage:
    error = _error_fields(data)
    if error is not None:
        return CatalogMessage(instruments=[], error=error[0])

    records = data.get('active_symbols')
    if not isinstance(records, list):
        return CatalogMessage(instruments=[])

    instruments = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise ParseError(f"Active symbol #{index} is not an object", raw=raw)
        try:
            instruments.append(Instrument.from_dict(record))
        except KeyError as e:
            raise ParseError(f"Active symbol #{index} missing field {e}", raw=raw) from e
        except (TypeError, ValueError, OverflowError) as e:
            raise ParseError(f"Active symbol #{index} is invalid: {e}", raw=raw) from e

    logger.debug(f"Decoded {len(instruments)} active symbols")
    return CatalogMessage(instruments=instruments)


def _number(value: Any) -> float:
    # bool is an int subclass; a flag is never a price
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"expected a number, got {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"expected a finite number, got {value!r}")
    return number


def _optional_number(value: Any) -> Optional[float]:
    if value is None:
        return None
    return _number(value)
