import io
import os
import stat
import random
import struct

import pytest

import codec
import huffman as huff
from codec import HuffmanError, MalformedHeaderError, TruncatedStreamError


class OneWayStream(io.RawIOBase):
    """Readable, not seekable, hands out short reads."""

    def __init__(self, data: bytes, step: int = 3):
        self.data = data
        self.pos = 0
        self.step = step

    def readable(self):
        return True

    def readinto(self, b):
        n = min(len(b), self.step, len(self.data) - self.pos)
        b[:n] = self.data[self.pos:self.pos + n]
        self.pos += n
        return n


def header_counts(blob: bytes):
    return list(struct.unpack("<256Q", blob[:2048]))


@pytest.mark.parametrize("data", [
    b"",
    b"a",
    b"ab",
    b"hello world",
    bytes(range(256)),
    bytes(range(256)) * 4 + b"\x00" * 100,
    b"This is a test" * 100,
])
def test_roundtrip(data):
    assert codec.decode_bytes(codec.encode_bytes(data)) == data


def test_roundtrip_random_10kb():
    rng = random.Random(7)
    data = bytes(rng.getrandbits(8) for _ in range(10 * 1024))
    assert codec.decode_bytes(codec.encode_bytes(data)) == data


def test_roundtrip_skewed_random():
    rng = random.Random(11)
    data = bytes(min(255, int(rng.expovariate(0.3))) for _ in range(20000))
    assert codec.decode_bytes(codec.encode_bytes(data)) == data


def test_header_size_constant():
    assert codec.HEADER_SIZE == 2048


def test_empty_input_is_header_only():
    blob = codec.encode_bytes(b"")
    assert blob == b"\x00" * 2048
    assert codec.decode_bytes(blob) == b""


def test_single_repeated_byte():
    blob = codec.encode_bytes(b"AAA")
    assert len(blob) == 2048 + 1
    assert blob[2048] == 0 # three 0 bits then padding
    assert codec.decode_bytes(blob) == b"AAA"


def test_single_byte_long_run():
    data = b"A" * (10 * 1024)
    blob = codec.encode_bytes(data)
    assert len(blob) == 2048 + 10 * 1024 // 8
    assert codec.decode_bytes(blob) == data


def test_header_fidelity():
    data = b"mississippi\n\x00\x00\xfe"
    counts = header_counts(codec.encode_bytes(data))
    assert counts == list(huff.count(data).counts)
    assert counts[ord("s")] == 4
    assert sum(counts) == len(data)


def test_header_is_little_endian():
    blob = codec.encode_bytes(b"\x01" * 258)
    assert blob[8:16] == (258).to_bytes(8, "little")


def test_read_write_header():
    table = huff.count(b"xyzzy")
    sink = io.BytesIO()
    assert codec.write_header(table, sink) == 2048
    assert codec.read_header(io.BytesIO(sink.getvalue())) == table


def test_encoding_is_deterministic():
    data = bytes(random.Random(3).choice(b"abcdefgh") for _ in range(5000))
    assert codec.encode_bytes(data) == codec.encode_bytes(data)


def test_known_bitstream():
    # a:2 b:1 c:1 -> b,c merge first, then a (older) goes left; a=0, b=10, c=11
    blob = codec.encode_bytes(b"abca")
    assert blob[2048:] == bytes([0b01011000])


def test_truncated_bitstream_raises():
    blob = codec.encode_bytes(b"This is a test" * 100)
    with pytest.raises(TruncatedStreamError):
        codec.decode_bytes(blob[:-3])


def test_truncated_single_symbol_raises():
    blob = codec.encode_bytes(b"Z" * 17)
    assert len(blob) == 2048 + 3
    with pytest.raises(TruncatedStreamError):
        codec.decode_bytes(blob[:-1])


def test_missing_bitstream_raises():
    blob = codec.encode_bytes(b"abc")
    with pytest.raises(EOFError):
        codec.decode_bytes(blob[:2048])


@pytest.mark.parametrize("size", [0, 1, 2047])
def test_short_header_raises(size):
    with pytest.raises(MalformedHeaderError):
        codec.decode_bytes(b"\x00" * size)


def test_errors_share_base():
    assert issubclass(MalformedHeaderError, HuffmanError)
    assert issubclass(TruncatedStreamError, HuffmanError)


def test_trailing_bytes_are_ignored():
    data = b"abcabcabd"
    blob = codec.encode_bytes(data)
    assert codec.decode_bytes(blob + b"\xff\xff") == data


def test_decoder_stops_at_symbol_count():
    data = b"abracadabra"
    source = io.BytesIO(codec.encode_bytes(data) + b"junk")
    sink = io.BytesIO()
    report = codec.decode(source, sink)
    assert sink.getvalue() == data
    assert report.output_bytes == len(data)
    assert report.unique_symbols == 5


def test_encode_report():
    data = b"aaaabbc"
    sink = io.BytesIO()
    report = codec.encode(io.BytesIO(data), sink)
    # a=1 (1 bit x4), b=01 (2 bits x2), c=00 (2 bits)
    assert report.bitstream_bits == 10
    assert report.pad_bits == 6
    assert report.input_bytes == 7
    assert report.output_bytes == len(sink.getvalue()) == 2048 + 2
    assert report.unique_symbols == 3


def test_encode_from_unseekable_source():
    data = b"streamed input that cannot be rewound " * 20
    sink = io.BytesIO()
    codec.encode(OneWayStream(data), sink)
    assert sink.getvalue() == codec.encode_bytes(data)


def test_decode_from_short_reads():
    data = b"short reads still decode" * 30
    sink = io.BytesIO()
    codec.decode(OneWayStream(codec.encode_bytes(data), step=5), sink)
    assert sink.getvalue() == data


def test_encode_respects_source_position():
    source = io.BytesIO(b"skip:payload")
    source.seek(5)
    sink = io.BytesIO()
    codec.encode(source, sink)
    assert codec.decode_bytes(sink.getvalue()) == b"payload"


def test_skewed_input_shrinks():
    data = b"A" * 90000 + bytes(range(256)) * 40
    assert len(codec.encode_bytes(data)) < len(data)


def test_uniform_input_does_not_shrink():
    data = bytes(range(256)) * 16
    blob = codec.encode_bytes(data)
    assert len(blob) == 2048 + len(data)


def test_encode_decode_file(tmp_path):
    src = tmp_path / "in.bin"
    packed = tmp_path / "in.bin.huff"
    restored = tmp_path / "out.bin"
    src.write_bytes(b"file contents " * 64)

    report = codec.encode_file(src, packed)
    assert report.output_bytes == packed.stat().st_size
    codec.decode_file(packed, restored)
    assert restored.read_bytes() == src.read_bytes()


def test_failed_decode_leaves_no_output(tmp_path):
    bad = tmp_path / "bad.huff"
    bad.write_bytes(b"\x00" * 100)
    out = tmp_path / "out.bin"
    with pytest.raises(MalformedHeaderError):
        codec.decode_file(bad, out)
    assert not out.exists()
    assert sorted(p.name for p in tmp_path.iterdir()) == ["bad.huff"]


def test_missing_input_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        codec.encode_file(tmp_path / "nope", tmp_path / "out")
    assert list(tmp_path.iterdir()) == []


@pytest.mark.skipif(os.name != "posix", reason="POSIX file modes")
def test_output_files_follow_umask(tmp_path):
    src = tmp_path / "in.bin"
    src.write_bytes(b"mode check " * 20)
    plain = tmp_path / "plain.bin"

    old = os.umask(0o022)
    try:
        plain.write_bytes(b"")
        codec.encode_file(src, tmp_path / "in.bin.huff")
        codec.decode_file(tmp_path / "in.bin.huff", tmp_path / "out.bin")
    finally:
        os.umask(old)

    expected = stat.S_IMODE(plain.stat().st_mode)
    assert expected == 0o644
    assert stat.S_IMODE((tmp_path / "in.bin.huff").stat().st_mode) == expected
    assert stat.S_IMODE((tmp_path / "out.bin").stat().st_mode) == expected


@pytest.mark.skipif(os.name != "posix", reason="POSIX file modes")
def test_overwrite_keeps_existing_mode(tmp_path):
    src = tmp_path / "in.bin"
    src.write_bytes(b"keep my mode")
    out = tmp_path / "in.bin.huff"
    out.write_bytes(b"old")
    os.chmod(out, 0o640)

    codec.encode_file(src, out)
    assert stat.S_IMODE(out.stat().st_mode) == 0o640
    assert codec.decode_bytes(out.read_bytes()) == b"keep my mode"


def test_errors_importable_from_codec():
    assert codec.TruncatedStreamError is huff.TruncatedStreamError
    assert codec.MalformedHeaderError is huff.MalformedHeaderError
    assert codec.HuffmanError is huff.HuffmanError
