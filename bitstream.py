from typing import BinaryIO

from huffman import TruncatedStreamError

CHUNK_SIZE = 64 * 1024 # bytes buffered per read/write against the underlying stream


class BitWriter:
    """
    Packs variable-length codes into bytes, most significant bit first.

    Complete bytes are buffered and handed to ``sink.write`` in chunks;
    ``finish`` zero-pads the last partial byte in its low bits.
    """

    def __init__(self, sink: BinaryIO, chunk_size: int = CHUNK_SIZE):
        self.sink = sink
        self.chunk_size = chunk_size
        self.out = bytearray()
        self.acc = 0 # pending bits, right-aligned
        self.acc_bits = 0
        self.bits_written = 0

    def write_bits(self, pattern: int, length: int) -> None:
        if length < 0:
            raise ValueError(f"bit length must be non-negative, got {length}")
        self.acc = (self.acc << length) | (pattern & ((1 << length) - 1))
        self.acc_bits += length
        self.bits_written += length

        while self.acc_bits >= 8:
            self.acc_bits -= 8
            self.out.append((self.acc >> self.acc_bits) & 0xFF)
        self.acc &= (1 << self.acc_bits) - 1

        if len(self.out) >= self.chunk_size:
            self.flush()

    def flush(self) -> None: # hand complete bytes to the sink
        if self.out:
            self.sink.write(bytes(self.out))
            self.out.clear()

    @property
    def pad_bits(self) -> int: # zero bits finish() will append
        return (8 - self.acc_bits) % 8

    def finish(self) -> int:
        if self.acc_bits:
            self.out.append((self.acc << (8 - self.acc_bits)) & 0xFF)
            self.acc = 0
            self.acc_bits = 0
        self.flush()
        return self.bits_written


class BitReader:
    """Unpacks bytes into bits, most significant bit first."""

    def __init__(self, source: BinaryIO, chunk_size: int = CHUNK_SIZE):
        self.source = source
        self.chunk_size = chunk_size
        self.buf = b""
        self.pos = 0 # next byte in buf
        self.byte = 0
        self.mask = 0 # next bit of self.byte; 0 when a new byte is needed
        self.bits_read = 0

    def _next_byte(self) -> int:
        if self.pos >= len(self.buf):
            self.buf = self.source.read(self.chunk_size)
            self.pos = 0
            if not self.buf:
                raise TruncatedStreamError(f"bitstream exhausted after {self.bits_read} bits")
        value = self.buf[self.pos]
        self.pos += 1
        return value

    def read_bit(self) -> int:
        if self.mask == 0:
            self.byte = self._next_byte()
            self.mask = 0x80
        bit = 1 if self.byte & self.mask else 0
        self.mask >>= 1
        self.bits_read += 1
        return bit
