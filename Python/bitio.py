import sys
from typing import Iterable, Optional


class TruncatedStreamError(EOFError):
    """Raised when a bit reader runs out of buffered bytes."""


class CompressorBitio:
    PACIFIER_COUNT = 2047

    class BitPacker:
        def __init__(self, pacifier: bool = False):
            self.buffer: bytearray = bytearray()
            self.rack: int = 0
            self.mask: int = 0x80
            self.pacifier: bool = pacifier
            self.pacifier_counter: int = 0
            self.bit_count: int = 0

        def _emit_rack(self):
            self.buffer.append(self.rack)
            if self.pacifier:
                self.pacifier_counter += 1
                if (self.pacifier_counter & CompressorBitio.PACIFIER_COUNT) == 0:
                    sys.stdout.write(".")
                    sys.stdout.flush()
            self.rack = 0
            self.mask = 0x80

        def output_bit(self, bit: int):
            if bit != 0:
                self.rack |= self.mask
            self.mask >>= 1
            self.bit_count += 1
            if self.mask == 0:
                self._emit_rack()

        def output_bits(self, code: int, count: int):
            mask_code: int = 1 << (count - 1) if count > 0 else 0
            while mask_code != 0:
                self.output_bit(mask_code & code)
                mask_code >>= 1

        def pack(self, bits: Iterable[int]) -> 'CompressorBitio.BitPacker':
            for bit in bits:
                self.output_bit(bit)
            return self

        def close(self) -> bytes:
            # Low bits of the last partial byte are left as zero.
            if self.mask != 0x80:
                self._emit_rack()
            return bytes(self.buffer)

    class BitUnpacker:
        def __init__(self, data: bytes, length: Optional[int] = None,
                     byte_index: int = 0, bit_index: int = 7, pacifier: bool = False):
            if length is None:
                length = len(data)
            if length < 0 or length > len(data):
                raise ValueError(f"length {length} outside buffer of {len(data)} bytes")
            if not 0 <= bit_index <= 7:
                raise ValueError(f"bit index {bit_index} outside 7..0")
            self.data = data
            self.length: int = length
            self.byte_index: int = byte_index
            self.bit_index: int = bit_index
            self.pacifier: bool = pacifier
            self.pacifier_counter: int = 0

        @property
        def exhausted(self) -> bool:
            return self.byte_index >= self.length

        def input_bit(self) -> int:
            if self.exhausted:
                raise TruncatedStreamError(
                    f"Fatal error in InputBit! End of stream reached after {self.length} bytes.")
            value = self.data[self.byte_index] & (1 << self.bit_index)
            self.bit_index -= 1
            if self.bit_index < 0:
                self.bit_index = 7
                self.byte_index += 1
                if self.pacifier:
                    self.pacifier_counter += 1
                    if (self.pacifier_counter & CompressorBitio.PACIFIER_COUNT) == 0:
                        sys.stdout.write(".")
                        sys.stdout.flush()
            return 1 if value != 0 else 0

        def input_bits(self, bit_count: int) -> int:
            return_value: int = 0
            for _ in range(bit_count):
                return_value = (return_value << 1) | self.input_bit()
            return return_value
