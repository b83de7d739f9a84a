"""
Static Huffman codec over byte streams.

File layout:
  offset 0    : 256 unsigned 64-bit little-endian counts, one per byte value 0..255
  offset 2048 : packed bitstream, MSB-first within each byte, last byte zero-padded

The decoder rebuilds the tree from the counts alone, so encode and decode
must use the same tree builder (see huffman.build for the tie-break order).
"""

import io
import os
import stat
import struct
import tempfile
from dataclasses import dataclass
from typing import BinaryIO, Iterator

import huffman as huff
from bitstream import CHUNK_SIZE, BitReader, BitWriter
from huffman import FrequencyTable, HuffmanError, MalformedHeaderError, TruncatedStreamError # errors re-exported for callers

HEADER_SYMBOLS = huff.SYMBOLS
HEADER_FORMAT = f"<{HEADER_SYMBOLS}Q"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT) # 2048


@dataclass
class CodingReport:
    input_bytes: int
    output_bytes: int
    bitstream_bits: int
    pad_bits: int
    unique_symbols: int

    @property
    def ratio(self) -> float: # encoded size / raw size, from the encoder's point of view
        return self.output_bytes / max(1, self.input_bytes)


def read_chunks(source: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            return
        yield chunk


def _read_exactly(source: BinaryIO, size: int) -> bytes:
    buf = bytearray()
    while len(buf) < size:
        chunk = source.read(size - len(buf))
        if not chunk:
            break
        buf += chunk
    return bytes(buf)


def write_header(table: FrequencyTable, sink: BinaryIO) -> int:
    sink.write(struct.pack(HEADER_FORMAT, *table.counts))
    return HEADER_SIZE


def read_header(source: BinaryIO) -> FrequencyTable:
    raw = _read_exactly(source, HEADER_SIZE)
    if len(raw) < HEADER_SIZE:
        raise MalformedHeaderError(f"header needs {HEADER_SIZE} bytes, got {len(raw)}")
    return FrequencyTable.from_counts(struct.unpack(HEADER_FORMAT, raw))


def _seekable(stream) -> bool:
    try:
        return stream.seekable()
    except (AttributeError, ValueError):
        return False


def encode(source: BinaryIO, sink: BinaryIO) -> CodingReport:
    """
    Encode everything readable from ``source`` into ``sink``.

    The input is read twice: once to count, once to emit codes. A seekable
    source is rewound between the passes; anything else is held in memory.
    """
    if _seekable(source):
        start = source.tell()
        table = FrequencyTable.from_chunks(read_chunks(source))
        source.seek(start)
    else:
        data = source.read()
        table = huff.count(data)
        source = io.BytesIO(data)

    tree = huff.build(table)
    codes = huff.assign(tree)

    write_header(table, sink)

    writer = BitWriter(sink)
    write_bits = writer.write_bits
    for chunk in read_chunks(source):
        for b in chunk:
            pattern, length = codes[b]
            write_bits(pattern, length)
    pad_bits = writer.pad_bits
    bits = writer.finish()

    return CodingReport(
        input_bytes=table.total,
        output_bytes=HEADER_SIZE + (bits + 7) // 8,
        bitstream_bits=bits,
        pad_bits=pad_bits,
        unique_symbols=len(codes),
    )


def decode(source: BinaryIO, sink: BinaryIO) -> CodingReport:
    """
    Decode a header + bitstream from ``source`` into ``sink``.

    Stops as soon as the number of bytes declared by the header has been
    written; padding bits after the last code are never examined.
    Raises MalformedHeaderError or TruncatedStreamError on short input.
    """
    table = read_header(source)
    tree = huff.build(table)
    total_symbols = table.total

    reader = BitReader(source)
    out = bytearray()
    emitted = 0

    if tree.is_single:
        # one symbol, one bit per occurrence; no traversal
        value = tree.symbol[tree.root]
        while emitted < total_symbols:
            reader.read_bit()
            out.append(value)
            emitted += 1
            if len(out) >= CHUNK_SIZE:
                sink.write(bytes(out))
                out.clear()
    elif not tree.is_empty:
        root = tree.root
        left, right, symbol = tree.left, tree.right, tree.symbol
        read_bit = reader.read_bit
        while emitted < total_symbols:
            node = root
            while symbol[node] is None:
                node = right[node] if read_bit() else left[node]
            out.append(symbol[node])
            emitted += 1
            if len(out) >= CHUNK_SIZE:
                sink.write(bytes(out))
                out.clear()

    if out:
        sink.write(bytes(out))

    bits = reader.bits_read
    return CodingReport(
        input_bytes=HEADER_SIZE + (bits + 7) // 8,
        output_bytes=emitted,
        bitstream_bits=bits,
        pad_bits=(8 - bits % 8) % 8,
        unique_symbols=len(table.symbols()),
    )


def encode_bytes(data: bytes) -> bytes:
    sink = io.BytesIO()
    encode(io.BytesIO(data), sink)
    return sink.getvalue()


def decode_bytes(blob: bytes) -> bytes:
    sink = io.BytesIO()
    decode(io.BytesIO(blob), sink)
    return sink.getvalue()


def _output_mode(out_path) -> int:
    # keep an existing file's mode, otherwise what open() under the umask would give
    try:
        return stat.S_IMODE(os.stat(out_path).st_mode)
    except FileNotFoundError:
        mask = os.umask(0)
        os.umask(mask)
        return 0o666 & ~mask


def _transcode_file(fn, in_path, out_path) -> CodingReport:
    # write beside the destination and swap in only on success
    out_dir = os.path.dirname(os.path.abspath(out_path))
    fd, tmp_path = tempfile.mkstemp(prefix=".huff-", dir=out_dir)
    try:
        with os.fdopen(fd, "wb") as dst, open(in_path, "rb") as src:
            report = fn(src, dst)
        os.chmod(tmp_path, _output_mode(out_path)) # mkstemp creates 0600
        os.replace(tmp_path, out_path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    return report


def encode_file(in_path, out_path) -> CodingReport:
    return _transcode_file(encode, in_path, out_path)


def decode_file(in_path, out_path) -> CodingReport:
    return _transcode_file(decode, in_path, out_path)
