"""
Unit Tests for the Wire Codec

Test Coverage:
    - Outbound request shapes (subscribe, forget_all, active_symbols)
    - Tick decoding, including optional ask/bid and subscription id
    - Catalog decoding and record fallbacks
    - Error frames taking precedence over tick payloads
    - Malformed frames raising ParseError
"""

import sys
import json
from pathlib import Path

import pytest

# Add project root
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from feed import codec
from feed.codec import CatalogMessage, ErrorMessage, OtherMessage, TickMessage
from feed.exceptions import ParseError
from feed.models import Tick


# ==================== Test: Outbound Requests ====================


class TestOutboundRequests:
    """Requests are plain JSON objects"""

    def test_subscribe_request(self):
        text = codec.encode(codec.subscribe_request(["frxEURUSD", "frxAUDJPY"]))
        assert json.loads(text) == {"ticks": ["frxEURUSD", "frxAUDJPY"], "subscribe": 1}

    def test_subscribe_request_accepts_any_iterable(self):
        request = codec.subscribe_request(s for s in ("R_100",))
        assert request["ticks"] == ["R_100"]

    def test_forget_all_request(self):
        assert json.loads(codec.encode(codec.forget_all_request())) == {"forget_all": "ticks"}

    def test_active_symbols_request(self):
        assert codec.active_symbols_request() == {"active_symbols": "full"}


# ==================== Test: Tick Decoding ====================


class TestTickDecoding:
    """Tests for tick frames"""

    def test_decodes_full_tick(self, tick_message):
        message = codec.decode(json.dumps(tick_message))

        assert isinstance(message, TickMessage)
        assert message.subscription_id == "b4c3a2f1"
        tick = message.tick
        assert tick.symbol == "frxEURUSD"
        assert tick.quote == pytest.approx(1.08953)
        assert tick.ask == pytest.approx(1.08955)
        assert tick.bid == pytest.approx(1.08951)
        assert tick.epoch == 1699876543
        assert tick.id == "abc123"
        assert tick.pip_size == 5

    def test_decodes_bytes(self, tick_message):
        message = codec.decode(json.dumps(tick_message).encode("utf-8"))
        assert isinstance(message, TickMessage)

    def test_tick_without_ask_bid(self, tick_message):
        del tick_message["tick"]["ask"]
        del tick_message["tick"]["bid"]
        del tick_message["subscription"]

        message = codec.decode(json.dumps(tick_message))

        assert message.tick.ask is None
        assert message.tick.bid is None
        assert message.tick.spread is None
        assert message.subscription_id is None

    def test_integer_quote_becomes_float(self, tick_message):
        tick_message["tick"]["quote"] = 1234
        message = codec.decode(json.dumps(tick_message))
        assert message.tick.quote == 1234.0
        assert isinstance(message.tick.quote, float)

    def test_encode_decode_tick_is_identity(self):
        tick = Tick(symbol="R_100", quote=1234.56, epoch=1700000000, id="t-1", pip_size=2,
                    ask=1234.6, bid=1234.52)

        message = codec.decode(codec.encode_tick(tick, subscription_id="sub-1"))

        assert message.tick == tick
        assert message.subscription_id == "sub-1"

    @pytest.mark.parametrize("field", ["symbol", "quote", "epoch", "id", "pip_size"])
    def test_missing_tick_field_raises(self, tick_message, field):
        del tick_message["tick"][field]
        with pytest.raises(ParseError, match=field):
            codec.decode(json.dumps(tick_message))

    def test_missing_tick_payload_raises(self):
        with pytest.raises(ParseError):
            codec.decode('{"msg_type": "tick"}')

    @pytest.mark.parametrize("quote", ["1.2345", True, None])
    def test_non_numeric_quote_raises(self, tick_message, quote):
        tick_message["tick"]["quote"] = quote
        with pytest.raises(ParseError):
            codec.decode(json.dumps(tick_message))

    def test_negative_pip_size_raises(self, tick_message):
        tick_message["tick"]["pip_size"] = -1
        with pytest.raises(ParseError, match="pip_size"):
            codec.decode(json.dumps(tick_message))

    @pytest.mark.parametrize("field", ["epoch", "pip_size", "quote", "ask"])
    def test_infinite_number_raises(self, tick_message, field):
        frame = json.dumps(tick_message).replace(
            f'"{field}": {json.dumps(tick_message["tick"][field])}', f'"{field}": 1e400'
        )
        assert "1e400" in frame

        with pytest.raises(ParseError, match="Invalid tick payload"):
            codec.decode(frame)


# ==================== Test: Catalog Decoding ====================


class TestCatalogDecoding:
    """Tests for active_symbols frames"""

    def test_decodes_records_in_order(self, catalog_message, catalog_records):
        message = codec.decode(json.dumps(catalog_message))

        assert isinstance(message, CatalogMessage)
        assert message.error is None
        assert [i.symbol for i in message.instruments] == [r["symbol"] for r in catalog_records]

    def test_missing_list_is_empty_catalog(self):
        message = codec.decode('{"msg_type": "active_symbols"}')
        assert message == CatalogMessage(instruments=[])

    def test_error_flagged_catalog(self):
        frame = {
            "msg_type": "active_symbols",
            "error": {"code": "RateLimit", "message": "You have reached the rate limit"},
        }
        message = codec.decode(json.dumps(frame))

        assert isinstance(message, CatalogMessage)
        assert message.instruments == []
        assert message.error == "You have reached the rate limit"

    def test_record_fallback_fields(self):
        frame = {
            "msg_type": "active_symbols",
            "active_symbols": [{
                "underlying_symbol": "1HZ100V",
                "underlying_symbol_type": "stockindex",
                "market": "synthetic_index",
                "pip_size": 0.01,
                "exchange_is_open": 1,
                "is_trading_suspended": 0,
            }],
        }
        instrument = codec.decode(json.dumps(frame)).instruments[0]

        assert instrument.symbol == "1HZ100V"
        assert instrument.symbol_type == "stockindex"
        assert instrument.pip == 0.01
        assert instrument.display_name == "1HZ100V"

    def test_record_missing_market_raises(self, catalog_records):
        del catalog_records[2]["market"]
        frame = {"msg_type": "active_symbols", "active_symbols": catalog_records}

        with pytest.raises(ParseError, match="#2"):
            codec.decode(json.dumps(frame))

    def test_record_missing_symbol_names_symbol(self, catalog_records):
        del catalog_records[0]["symbol"]
        frame = {"msg_type": "active_symbols", "active_symbols": catalog_records}

        with pytest.raises(ParseError, match="missing field 'symbol'"):
            codec.decode(json.dumps(frame))

    def test_record_with_infinite_flag_raises(self):
        frame = (
            '{"msg_type": "active_symbols", "active_symbols": [{"symbol": "R_50", '
            '"market": "synthetic_index", "exchange_is_open": 1e400, "is_trading_suspended": 0}]}'
        )
        with pytest.raises(ParseError, match="#0 is invalid"):
            codec.decode(frame)

    def test_non_object_record_raises(self):
        with pytest.raises(ParseError):
            codec.decode('{"msg_type": "active_symbols", "active_symbols": ["frxEURUSD"]}')


# ==================== Test: Errors and Other Frames ====================


class TestErrorAndOtherFrames:
    """Error precedence and pass-through of unknown frames"""

    def test_error_frame(self):
        frame = {
            "msg_type": "tick",
            "echo_req": {"ticks": "BOGUS"},
            "error": {"code": "InvalidSymbol", "message": "Symbol BOGUS is invalid."},
        }
        message = codec.decode(json.dumps(frame))

        assert message == ErrorMessage(
            message="Symbol BOGUS is invalid.", code="InvalidSymbol", msg_type="tick"
        )

    def test_error_without_message_is_not_an_error(self, tick_message):
        tick_message["error"] = {"code": "Whatever"}
        assert isinstance(codec.decode(json.dumps(tick_message)), TickMessage)

    def test_unknown_msg_type_passes_through(self):
        message = codec.decode('{"msg_type": "forget_all", "forget_all": ["abc"]}')

        assert isinstance(message, OtherMessage)
        assert message.msg_type == "forget_all"
        assert message.payload["forget_all"] == ["abc"]


# ==================== Test: Malformed Frames ====================


class TestMalformedFrames:
    """Frames that are not valid protocol messages"""

    @pytest.mark.parametrize("raw", ["not json", "{", ""])
    def test_invalid_json(self, raw):
        with pytest.raises(ParseError) as exc_info:
            codec.decode(raw)
        assert exc_info.value.raw == raw

    @pytest.mark.parametrize("raw", ["[1, 2]", "42", '"tick"'])
    def test_non_object(self, raw):
        with pytest.raises(ParseError, match="not a JSON object"):
            codec.decode(raw)

    @pytest.mark.parametrize("raw", ['{"tick": {}}', '{"msg_type": ""}', '{"msg_type": 7}'])
    def test_missing_msg_type(self, raw):
        with pytest.raises(ParseError, match="msg_type"):
            codec.decode(raw)

    def test_invalid_utf8(self):
        with pytest.raises(ParseError):
            codec.decode(b"\xff\xfe\xfd")
