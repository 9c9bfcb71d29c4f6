"""Circom witness file (.wtns) codec.

Layout (little-endian):

    magic "wtns" version:u32 n_sections:u32
    section 1 (header):  n8:u32 prime[n8] n_witness:u32
    section 2 (values):  value[n8] * n_witness
"""

import struct
from dataclasses import dataclass
from pathlib import Path

from ivc.errors import ParseError

WTNS_MAGIC = b'wtns'
WTNS_VERSION = 2


@dataclass(frozen=True)
class WitnessFile:
    prime: int
    values: tuple[int, ...]


def load_wtns(path: str | Path) -> WitnessFile:
    with open(path, 'rb') as f:
        data = f.read()
    return wtns_from_bytes(data)


def wtns_from_bytes(data: bytes) -> WitnessFile:
    """Parse a .wtns file produced by a circom witness generator."""
    if len(data) < 12 or data[:4] != WTNS_MAGIC:
        raise ParseError("not a wtns file (bad magic)")

    try:
        version, n_sections = struct.unpack_from('<II', data, 4)
        if version > WTNS_VERSION:
            raise ParseError(f"unsupported wtns version {version}")

        sections = {}
        idx = 12
        for _ in range(n_sections):
            section_type, size = struct.unpack_from('<IQ', data, idx)
            idx += 12
            sections[section_type] = (idx, size)
            idx += size

        if 1 not in sections or 2 not in sections:
            raise ParseError("wtns file is missing its header or values section")

        start, _ = sections[1]
        n8 = struct.unpack_from('<I', data, start)[0]
        prime = int.from_bytes(data[start + 4:start + 4 + n8], 'little')
        n_witness = struct.unpack_from('<I', data, start + 4 + n8)[0]

        start, size = sections[2]
        if size != n_witness * n8 or start + size > len(data):
            raise ParseError(f"values section holds {size} bytes, "
                             f"expected {n_witness} x {n8}")
    except struct.error as e:
        raise ParseError(f"truncated wtns file: {e}") from e

    values = tuple(
        int.from_bytes(data[start + i * n8:start + (i + 1) * n8], 'little')
        for i in range(n_witness)
    )
    return WitnessFile(prime=prime, values=values)


def wtns_to_bytes(witness: WitnessFile) -> bytes:
    n8 = (witness.prime.bit_length() + 63) // 64 * 8
    header = struct.pack('<I', n8) + witness.prime.to_bytes(n8, 'little')
    header += struct.pack('<I', len(witness.values))
    body = b''.join(v.to_bytes(n8, 'little') for v in witness.values)

    out = bytearray(WTNS_MAGIC)
    out += struct.pack('<II', WTNS_VERSION, 2)
    out += struct.pack('<IQ', 1, len(header)) + header
    out += struct.pack('<IQ', 2, len(body)) + body
    return bytes(out)
