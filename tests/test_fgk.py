import random

import pytest

import fgk
from bitio import TruncatedStreamError
from fgk import (END_TEXT, Decoder, EmptyInputError, Encoder, SentinelCollisionError, compress,
                 decode, encode)
from generator import random_bytes

SAMPLES = [
    b"",
    b"a",
    b"hello world",
    b"abracadabra" * 20,
    b"the quick brown fox jumps over the lazy dog\n" * 8,
    bytes(b for b in range(256) if b != END_TEXT),
    bytes(b for b in range(255, -1, -1) if b != END_TEXT) * 2,
]


def raw_bits(c):
    return [(c >> i) & 1 for i in range(7, -1, -1)]


def sibling_property_holds(tree):
    nodes = tree.nodes
    return all(a.weight >= b.weight
               for a in nodes for b in nodes if a.rank > b.rank)


@pytest.mark.parametrize("data", SAMPLES)
def test_round_trip(data):
    blob = compress(data)
    assert decode(blob, len(blob)) == data


def test_random_round_trip():
    rng = random.Random(4660)
    for size in (100, 100, 1000):
        data = random_bytes(size, rng, exclude=[END_TEXT])
        blob = compress(data)
        assert decode(blob, len(blob)) == data


def test_aaa_stream():
    assert encode(b"aaa\x03") == bytes([0x61, 0xC0, 0x60])
    assert decode(bytes([0x61, 0xC0, 0x60])) == b"aaa"


def test_ab_stream():
    assert encode(b"ab\x03") == bytes([0x61, 0x31, 0x00, 0x60])
    assert decode(bytes([0x61, 0x31, 0x00, 0x60])) == b"ab"


def test_aaa_codewords():
    encoder = Encoder()
    assert encoder.encode_symbol(ord("a")) == raw_bits(ord("a"))
    assert encoder.encode_symbol(ord("a")) == [1]
    assert encoder.encode_symbol(ord("a")) == [1]
    assert encoder.encode_symbol(END_TEXT) == [0] + raw_bits(END_TEXT)


def test_sentinel_only_stream():
    assert encode(bytes([END_TEXT])) == bytes([END_TEXT])
    assert compress(b"") == bytes([END_TEXT])
    assert decode(bytes([END_TEXT])) == b""


def test_two_symbols_settle_on_stable_codes():
    encoder = Encoder()
    a, b = ord("a"), ord("b")
    for _ in range(5):
        encoder.encode_symbol(a)
        encoder.encode_symbol(b)
    code_a = encoder.encode_symbol(a)
    code_b = encoder.encode_symbol(b)
    assert code_a != code_b
    assert sorted([len(code_a), len(code_b)]) == [1, 2]
    for _ in range(20):
        assert encoder.encode_symbol(a) == code_a
        assert encoder.encode_symbol(b) == code_b
    encoder.tree.check_invariants()


def test_invariants_after_every_symbol():
    data = b"mississippi river " * 4 + random_bytes(300, random.Random(7), exclude=[END_TEXT])
    encoder = Encoder()
    for c in data:
        encoder.encode_symbol(c)
        encoder.tree.check_invariants()
        ranks = [node.rank for node in encoder.tree.nodes]
        assert len(set(ranks)) == len(ranks)
    assert sibling_property_holds(encoder.tree)

    blob = compress(data)
    decoder = Decoder()
    count = 0
    for _ in decoder.symbols(blob):
        decoder.tree.check_invariants()
        count += 1
    assert count == len(data)


def test_encoder_and_decoder_trees_match():
    data = b"she sells sea shells by the sea shore" + random_bytes(200, random.Random(11), exclude=[END_TEXT])
    encoder = Encoder()
    snapshots = []
    for c in data:
        encoder.encode_symbol(c)
        snapshots.append(encoder.tree.snapshot())

    decoder = Decoder()
    decoded = bytearray()
    for k, c in enumerate(decoder.symbols(compress(data))):
        decoded.append(c)
        assert decoder.tree.snapshot() == snapshots[k]
    assert bytes(decoded) == data


def test_trailing_bytes_past_length_are_ignored():
    blob = compress(b"abc")
    assert decode(blob + b"\xff\x00\xff", len(blob)) == b"abc"


def test_truncated_stream():
    blob = compress(b"hello world" * 5)
    with pytest.raises(TruncatedStreamError):
        decode(blob[:len(blob) // 2])
    with pytest.raises(TruncatedStreamError):
        decode(blob[:-1])
    with pytest.raises(TruncatedStreamError):
        decode(blob, len(blob) - 1)


def test_truncated_inside_raw_symbol():
    # Ends right after the first symbol.
    with pytest.raises(TruncatedStreamError):
        Decoder().decode(b"\x61", 1)
    # 'a', 'a', then the not-yet-seen code with only six raw bits left.
    with pytest.raises(EOFError):
        decode(b"\x61\x80")


def test_empty_input_is_rejected():
    with pytest.raises(EmptyInputError):
        encode(b"")
    with pytest.raises(EmptyInputError):
        decode(b"")
    with pytest.raises(EmptyInputError):
        decode(b"\x03", 0)
    assert issubclass(EmptyInputError, ValueError)


def test_sentinel_in_payload_is_rejected():
    with pytest.raises(SentinelCollisionError):
        compress(b"a\x03b")
    assert issubclass(SentinelCollisionError, ValueError)


def test_other_sentinel():
    data = b"a\x03b\x03\x03c"
    blob = compress(data, end_of_text=0)
    assert decode(blob, end_of_text=0) == data
    assert decode(blob) != data


def test_out_of_range_values():
    with pytest.raises(ValueError):
        Encoder(end_of_text=256)
    with pytest.raises(ValueError):
        Decoder(end_of_text=-1)
    with pytest.raises(ValueError):
        encode([300, END_TEXT])
    with pytest.raises(ValueError):
        decode(b"\x03", 2)


def test_encode_accepts_symbol_lists():
    assert encode([ord("a"), ord("a"), ord("a"), END_TEXT]) == encode(b"aaa\x03")
    assert list(Encoder().bits(b"\x03")) == raw_bits(END_TEXT)


def test_print_tree(capsys):
    encoder = Encoder()
    for c in b"aab\n":
        encoder.encode_symbol(c)
    fgk.print_tree(encoder.tree)
    out = capsys.readouterr().out
    assert "Adaptive Huffman Tree:" in out
    assert "'a':     2 1" in out
    assert "< 10>:     1 " in out
