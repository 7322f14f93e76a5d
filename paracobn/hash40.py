"""
paracobn: Hash40 computation and the hash <-> label dictionary.

Param files never store field names, only 64-bit hashes of them:

    hash40(label) = len(label) << 32 | crc32(label)

Names are recovered through a label table (ParamLabels.csv style):

    0x1A4F3D3C5B,fighter_param
    0x0B3C0F2E41,common

Reference: paracobNET Hash40Util, prc-editor-rust hash_labels.rs
"""

import csv
import io
import re
import warnings

from .constants import MASK64, RESOLVE_FALLBACKS


# =============================================================================
# CRC-32 (ISO-HDLC: reflected, poly 0xEDB88320, init/xorout 0xFFFFFFFF)
# =============================================================================

def _make_crc32_table() -> tuple:
    table = []
    for n in range(256):
        c = n
        for _ in range(8):
            c = (c >> 1) ^ 0xEDB88320 if c & 1 else c >> 1
        table.append(c)
    return tuple(table)


CRC32_TABLE = _make_crc32_table()


def crc32(data) -> int:
    """
    Standard CRC-32 of a byte string (str is encoded as UTF-8 first).

    crc32(b"") == 0x00000000, crc32(b"123456789") == 0xCBF43926
    """
    if isinstance(data, str):
        data = data.encode('utf-8')
    crc = 0xFFFFFFFF
    for b in data:
        crc = (crc >> 8) ^ CRC32_TABLE[(crc ^ b) & 0xFF]
    return crc ^ 0xFFFFFFFF


def hash40(label: str) -> int:
    """Hash40 of a label: UTF-8 byte length in bits 32..39, CRC-32 below."""
    raw = label.encode('utf-8')
    return (len(raw) << 32) | crc32(raw)


# =============================================================================
# LABEL DICTIONARY
# =============================================================================

_HEX_RE = re.compile(r'(?:0[xX])?([0-9A-Fa-f]*)')


def _parse_hash_column(text: str):
    """Parse column 0 of a label row; None if it is not a valid u64 hex."""
    m = _HEX_RE.fullmatch(text)
    if m is None:
        return None
    digits = m.group(1).lstrip('0') or '0'
    if not m.group(1) and text[:2].lower() != '0x':
        return None
    value = int(digits, 16)
    if value > MASK64:
        return None
    return value


class HashLabels:
    """
    Bidirectional hash <-> label store.

    Passed explicitly to everything that needs names (reader tools, the
    display tree), so several documents can use different label sets.
    """

    def __init__(self):
        self.labels = {}        # hash -> label
        self.hashes = {}        # label -> hash
        self.errors = 0         # malformed rows skipped by load()

    def __len__(self):
        return len(self.labels)

    def __contains__(self, h):
        return h in self.labels

    def get_label(self, h: int):
        return self.labels.get(h)

    def get_hash(self, label: str):
        return self.hashes.get(label)

    def _put(self, h: int, label: str):
        old = self.labels.get(h)
        if old is not None and old != label and self.hashes.get(old) == h:
            del self.hashes[old]
        self.labels[h] = label
        self.hashes[label] = h

    def register(self, label: str) -> int:
        """Add a label under its own Hash40 and return the hash."""
        h = hash40(label)
        self._put(h, label)
        return h

    def register_for_hash(self, h: int, label: str):
        """Name an existing hash, whether or not hash40(label) == h."""
        if not 0 <= h <= MASK64:
            raise ValueError(f"hash out of range: {h:#x}")
        self._put(h, label)

    def resolve(self, h: int) -> str:
        """
        Display name for a hash.

        Exact match first, then the truncated / sign-extended variants in
        RESOLVE_FALLBACKS order, then the hash itself as 0xHEX.
        """
        label = self.labels.get(h)
        if label is not None:
            return label
        for variant in RESOLVE_FALLBACKS:
            label = self.labels.get(variant(h))
            if label is not None:
                return label
        return f"0x{h:X}"

    def parse_hash_or_label(self, text: str) -> int:
        """
        Turn user input into a hash: a 0x-prefixed hex literal, or a known label.

        Raises KeyError for an unknown label; register() it first to accept it.
        """
        text = text.strip()
        if text[:2].lower() == '0x':
            h = _parse_hash_column(text)
            if h is not None and text[2:]:
                return h
        h = self.hashes.get(text)
        if h is not None:
            return h
        raise KeyError(f"Unknown label '{text}' - would generate hash 0x{hash40(text):X}")

    def filter(self, text: str) -> list:
        """(hash, label) pairs whose label or hex hash contains text, sorted by hash."""
        needle = text.lower()
        return [(h, label) for h, label in sorted(self.labels.items())
                if not needle or needle in label.lower() or needle in f"{h:x}"]

    # -- Persistence --

    def load(self, text: str) -> int:
        """
        Merge a two-column label table into the dictionary.

        Rows that do not have exactly two fields, or whose hash column is not
        hex, are skipped and counted in self.errors. Returns the number of
        rows loaded.
        """
        count = 0
        bad = 0
        for row in csv.reader(io.StringIO(text)):
            if not row:
                continue
            if len(row) != 2:
                bad += 1
                continue
            h = _parse_hash_column(row[0])
            if h is None:
                bad += 1
                continue
            self._put(h, row[1])
            count += 1
        if bad:
            warnings.warn(f"skipped {bad} malformed label row(s)")
        self.errors += bad
        return count

    def persist(self) -> bytes:
        """All entries as 0xHEX,label lines, ascending by hash."""
        buf = io.StringIO()
        w = csv.writer(buf, lineterminator='\n')
        for h, label in sorted(self.labels.items()):
            w.writerow((f"0x{h:X}", label))
        return buf.getvalue().encode('utf-8')

    def load_file(self, path) -> int:
        with open(path, 'r', encoding='utf-8', errors='replace', newline='') as f:
            return self.load(f.read())

    def save_file(self, path):
        with open(path, 'wb') as f:
            f.write(self.persist())
