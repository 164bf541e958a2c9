"""Tests for EventDecoder payload decoding."""

import base64

import pytest
from solders.pubkey import Pubkey

from twob_core.decoder import EventDecoder, DecodeStatus, extract_payload
from twob_core.errors import UnknownDiscriminator
from twob_core.events import EventKind, MarketUpdateEvent, ClosePositionEvent

from core_helpers import close_position_payload, data_line, market_update_payload


@pytest.fixture
def decoder():
    return EventDecoder()


class TestExtractPayload:
    """Tests for prefix stripping and base64 decoding."""

    def test_program_data_prefix(self):
        assert extract_payload("Program data: " + base64.b64encode(b"abc").decode()) == b"abc"

    def test_program_log_prefix(self):
        assert extract_payload("Program log: " + base64.b64encode(b"xyz").decode()) == b"xyz"

    def test_unknown_prefix(self):
        assert extract_payload("Program return: abc") is None

    def test_plain_text_log_is_not_base64(self):
        assert extract_payload("Program log: Instruction: ClosePosition") is None


class TestDecodeLine:
    """Tests for EventDecoder.decode_line."""

    def test_market_update(self, decoder, market_update_line):
        result = decoder.decode_line(market_update_line, signature="sig", slot=9, log_index=2)

        assert result.status is DecodeStatus.EVENT
        assert result.event == MarketUpdateEvent(
            kind=EventKind.MARKET_UPDATE,
            signature="sig",
            slot=9,
            log_index=2,
            market_id=7,
            base_flow=11,
            quote_flow=22,
        )

    def test_close_position(self, decoder, close_position_line):
        result = decoder.decode_line(close_position_line, signature="sig", slot=9, log_index=4)

        assert result.status is DecodeStatus.EVENT
        event = result.event
        assert isinstance(event, ClosePositionEvent)
        assert event.position_authority == str(Pubkey.from_bytes(bytes(range(32))))
        assert event.market_id == 1
        assert event.start_slot == 100
        assert event.end_slot == 200
        assert event.deposit_amount == 1_000
        assert event.swapped_amount == 400
        assert event.remaining_amount == 600
        assert event.fee_amount == 3
        assert event.is_buy == 1
        assert event.log_index == 4

    def test_large_u64_values(self, decoder):
        max_u64 = 2**64 - 1
        line = data_line(market_update_payload(market_id=max_u64, base_flow=max_u64, quote_flow=0))

        result = decoder.decode_line(line)

        assert result.event.market_id == max_u64
        assert result.event.base_flow == max_u64

    def test_program_log_prefix_carries_event(self, decoder):
        line = "Program log: " + base64.b64encode(market_update_payload()).decode()

        result = decoder.decode_line(line)

        assert result.status is DecodeStatus.EVENT

    def test_line_without_prefix_ignored(self, decoder):
        result = decoder.decode_line("Program consumed 100 of 200000 compute units")

        assert result.status is DecodeStatus.IGNORED
        assert result.event is None

    def test_invalid_base64_ignored(self, decoder):
        result = decoder.decode_line("Program data: !!!not-base64!!!")

        assert result.status is DecodeStatus.IGNORED

    @pytest.mark.parametrize("length", [0, 1, 5, 7])
    def test_short_payload_ignored(self, decoder, length):
        """Payloads too short to carry a discriminator are never unknown or errors."""
        result = decoder.decode_line(data_line(market_update_payload()[:length]))

        assert result.status is DecodeStatus.IGNORED

    def test_unknown_discriminator(self, decoder):
        payload = b"\x01\x02\x03\x04\x05\x06\x07\x08" + b"\x00" * 24

        result = decoder.decode_line(data_line(payload))

        assert result.status is DecodeStatus.UNKNOWN
        assert result.discriminator == b"\x01\x02\x03\x04\x05\x06\x07\x08"
        assert isinstance(result.error, UnknownDiscriminator)
        assert str(result.error) == "Unknown event discriminator 0x0102030405060708"

    def test_exactly_eight_unknown_bytes(self, decoder):
        result = decoder.decode_line(data_line(b"\xff" * 8))

        assert result.status is DecodeStatus.UNKNOWN

    def test_truncated_market_update_is_error(self, decoder):
        payload = market_update_payload()[:-1]

        result = decoder.decode_line(data_line(payload), signature="sigX", slot=77)

        assert result.status is DecodeStatus.ERROR
        assert result.event is None
        assert result.error.signature == "sigX"
        assert result.error.slot == 77
        assert result.error.kind == "MarketUpdateEvent"

    def test_discriminator_only_is_error(self, decoder):
        payload = close_position_payload()[:8]

        result = decoder.decode_line(data_line(payload))

        assert result.status is DecodeStatus.ERROR

    def test_truncated_close_position_is_error(self, decoder):
        payload = close_position_payload()[:40]

        result = decoder.decode_line(data_line(payload))

        assert result.status is DecodeStatus.ERROR
        assert "ClosePositionEvent" in str(result.error)

    def test_trailing_bytes_tolerated(self, decoder):
        payload = market_update_payload(market_id=3) + b"\x00\x00"

        result = decoder.decode_line(data_line(payload))

        assert result.status is DecodeStatus.EVENT
        assert result.event.market_id == 3
