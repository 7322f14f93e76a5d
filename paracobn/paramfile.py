"""
paracobn: Param container (.prc / .stprm / .stdat) reader and writer.

File layout (all little-endian):

    0x00  char[8]   "paracobn"
    0x08  int32     hash table size in bytes
    0x0C  int32     reference table size in bytes
    0x10  uint64[]  hash table
    ....  bytes     reference table: struct (hash index, offset) pair blocks
                    and NUL-terminated strings, in creation order
    ....  param     root value (always a struct)

Every value starts with a one-byte type tag (constants.TYPE_*):

    1..8   Bool I8 U8 I16 U16 I32 U32 F32: fixed-width payload
    9      Hash:   uint32 index into the hash table
    10     String: int32 offset into the reference table
    11     List:   int32 count, count x uint32 offsets from the list's tag byte
    12     Struct: int32 count, int32 offset of its pair block in the ref table;
                   each pair is (int32 hash index, int32 offset from the tag byte)

The writer reproduces the paracobNET ordering rules so that output matches
files produced by the other tools:

  - hashes are collected with hash 0 first, then depth-first with struct
    fields in insertion order;
  - struct fields are written sorted by hash value;
  - reference table entries appear in the order they were created while
    writing (a struct's pair block is reserved before its fields are written).

The reader sorts each struct's pairs by hash index, so a parsed struct lists
its fields in hash table order.

Reference: paracobNET ParamFile.cs, prc-editor-rust param_file.rs
"""

import struct
import warnings

from .constants import (
    MAGIC, HEADER_SIZE, HASH_ENTRY_SIZE,
    TYPE_BOOL, TYPE_HASH, TYPE_STRING, TYPE_LIST, TYPE_STRUCT, SCALAR_FORMATS,
    DEFAULT_MAX_DEPTH, unknown_tag_size,
)
from .params import Param


class ParamFormatError(ValueError):
    """The input is not a valid param file."""


class ParamConsistencyError(RuntimeError):
    """The writer's hash / reference bookkeeping disagrees with the tree."""


# =============================================================================
# READER
# =============================================================================

class ParamReader:
    """
    Decodes a complete param file held in memory.

    After read(), hash_table, ref_start and param_start describe the file and
    anomalies lists everything that was tolerated instead of rejected.
    """

    def __init__(self, data, max_depth: int = DEFAULT_MAX_DEPTH):
        self.data = bytes(data)
        self.max_depth = max_depth
        self.hash_table_size = 0
        self.ref_table_size = 0
        self.hash_table = []
        self.ref_start = 0
        self.param_start = 0
        self.anomalies = []

    def _unpack(self, fmt, pos, what):
        size = struct.calcsize(fmt)
        if pos < 0 or pos + size > len(self.data):
            raise ParamFormatError(
                f"{what} at 0x{pos:X} runs past end of data (0x{len(self.data):X} bytes)")
        return struct.unpack_from(fmt, self.data, pos)

    def _anomaly(self, msg):
        self.anomalies.append(msg)
        warnings.warn(msg)

    def read_header(self):
        if len(self.data) < HEADER_SIZE:
            raise ParamFormatError(f"file too short for header: {len(self.data)} bytes")
        magic = self.data[:8]
        if magic != MAGIC:
            raise ParamFormatError(
                f"bad magic {magic!r}, expected {MAGIC!r}")
        self.hash_table_size, self.ref_table_size = struct.unpack_from('<ii', self.data, 8)
        if self.hash_table_size < 0 or self.ref_table_size < 0:
            raise ParamFormatError(
                f"negative section size (hash table {self.hash_table_size}, "
                f"ref table {self.ref_table_size})")

        self.ref_start = HEADER_SIZE + self.hash_table_size
        self.param_start = self.ref_start + self.ref_table_size

        count = self.hash_table_size // HASH_ENTRY_SIZE
        self.hash_table = list(self._unpack(f'<{count}Q', HEADER_SIZE, "hash table"))

    def read(self) -> Param:
        self.read_header()
        tag = self._unpack('<B', self.param_start, "root type tag")[0]
        if tag != TYPE_STRUCT:
            raise ParamFormatError(f"root is not a struct (type tag {tag})")
        try:
            return self.read_param(self.param_start, 0)
        except RecursionError:
            raise ParamFormatError(
                f"nesting too deep for the interpreter stack (cap {self.max_depth})") from None

    def read_param(self, pos: int, depth: int) -> Param:
        """Decode the value whose type tag is at pos."""
        if depth > self.max_depth:
            raise ParamFormatError(f"nesting deeper than {self.max_depth} at 0x{pos:X}")
        tag = self._unpack('<B', pos, "type tag")[0]

        if tag in SCALAR_FORMATS:
            v = self._unpack(SCALAR_FORMATS[tag], pos + 1, "value")[0]
            if tag == TYPE_BOOL:
                v = v != 0
            return Param(tag, v)

        if tag == TYPE_HASH:
            idx = self._unpack('<I', pos + 1, "hash index")[0]
            if idx >= len(self.hash_table):
                raise ParamFormatError(
                    f"hash index {idx} out of range (table size {len(self.hash_table)}) at 0x{pos:X}")
            return Param(TYPE_HASH, self.hash_table[idx])

        if tag == TYPE_STRING:
            ofs = self._unpack('<i', pos + 1, "string offset")[0]
            return Param(TYPE_STRING, self._read_string(self.ref_start + ofs))

        if tag == TYPE_LIST:
            count = self._unpack('<i', pos + 1, "list count")[0]
            if count < 0:
                raise ParamFormatError(f"negative list count {count} at 0x{pos:X}")
            offsets = self._unpack(f'<{count}I', pos + 5, "list offset table")
            items = []
            for o in offsets:
                items.append(self.read_param(pos + o, depth + 1))
            return Param(TYPE_LIST, items)

        if tag == TYPE_STRUCT:
            count, ref_ofs = self._unpack('<ii', pos + 1, "struct header")
            if count < 0:
                raise ParamFormatError(f"negative struct field count {count} at 0x{pos:X}")
            flat = self._unpack(f'<{2 * count}i', self.ref_start + ref_ofs, "struct ref entry")
            pairs = sorted(zip(flat[0::2], flat[1::2]), key=lambda p: p[0])

            fields = {}
            for hash_idx, param_ofs in pairs:
                if not 0 <= hash_idx < len(self.hash_table):
                    self._anomaly(
                        f"struct at 0x{pos:X}: field hash index {hash_idx} out of range, skipped")
                    continue
                fields[self.hash_table[hash_idx]] = self.read_param(pos + param_ofs, depth + 1)
            return Param(TYPE_STRUCT, fields)

        # Unknown tag: skip a guessed payload and keep going
        size = unknown_tag_size(tag)
        self._anomaly(f"unknown param type {tag} at 0x{pos:X}, {size}-byte placeholder")
        return Param.unknown(tag, size)

    def _read_string(self, pos):
        if not 0 <= pos < len(self.data):
            raise ParamFormatError(f"string offset 0x{pos:X} outside file")
        end = self.data.find(b'\x00', pos)
        if end < 0:
            raise ParamFormatError(f"unterminated string at 0x{pos:X}")
        return self.data[pos:end].decode('utf-8', errors='replace')


def parse(data, max_depth: int = DEFAULT_MAX_DEPTH) -> Param:
    """Decode a param file; returns the root struct."""
    return ParamReader(data, max_depth).read()


# =============================================================================
# WRITER
# =============================================================================

class ParamWriter:
    """
    Encodes a root struct.

    Strings and struct pair blocks live in the reference table, whose layout
    is only known once the whole tree has been written, so their offsets are
    written as 0 and patched afterwards from (position, target) fixup lists.
    """

    def __init__(self, root: Param, merge_refs: bool = False):
        if not isinstance(root, Param) or root.type != TYPE_STRUCT:
            raise ValueError("root of a param file must be a struct")
        self.root = root
        self.merge_refs = merge_refs

        self.hashes = []            # on-disk hash table
        self.hash_index = {}        # hash -> index in self.hashes

        self.out = bytearray()      # param section
        self.refs = []              # ref table entries: str, or list of (hash index, offset)
        self.string_refs = {}       # str -> entry index
        self.struct_refs = {}       # struct id -> entry index
        self.unresolved_strings = []    # (position in out, str)
        self.unresolved_structs = []    # (position in out, struct id)
        self._next_struct_id = 0

    # -- Pass 1: hash table --

    def add_hash(self, h: int):
        if h not in self.hash_index:
            self.hash_index[h] = len(self.hashes)
            self.hashes.append(h)

    def collect_hashes(self, p: Param):
        if p.type == TYPE_STRUCT:
            for h, item in p.value.items():
                self.add_hash(h)
                self.collect_hashes(item)
        elif p.type == TYPE_LIST:
            for item in p.value:
                self.collect_hashes(item)
        elif p.type == TYPE_HASH:
            self.add_hash(p.value)

    def _index_of(self, h):
        try:
            return self.hash_index[h]
        except KeyError:
            raise ParamConsistencyError(f"hash 0x{h:X} missing from hash table") from None

    # -- Pass 2: values --

    def write_param(self, p: Param):
        out = self.out
        start = len(out)
        out.append(p.type)

        if p.type in SCALAR_FORMATS:
            v = int(p.value) if p.type == TYPE_BOOL else p.value
            out += struct.pack(SCALAR_FORMATS[p.type], v)

        elif p.type == TYPE_HASH:
            out += struct.pack('<I', self._index_of(p.value))

        elif p.type == TYPE_STRING:
            if p.value not in self.string_refs:
                self.string_refs[p.value] = len(self.refs)
                self.refs.append(p.value)
            self.unresolved_strings.append((len(out), p.value))
            out += b'\x00\x00\x00\x00'

        elif p.type == TYPE_LIST:
            items = p.value
            out += struct.pack('<i', len(items))
            table = len(out)
            out += bytes(4 * len(items))
            offsets = []
            for item in items:
                offsets.append(len(out) - start)
                self.write_param(item)
            struct.pack_into(f'<{len(offsets)}I', out, table, *offsets)

        else:  # TYPE_STRUCT
            fields = p.value
            out += struct.pack('<i', len(fields))

            struct_id = self._next_struct_id
            self._next_struct_id += 1
            entry = len(self.refs)
            self.refs.append([])
            self.struct_refs[struct_id] = entry
            self.unresolved_structs.append((len(out), struct_id))
            out += b'\x00\x00\x00\x00'

            pairs = []
            for h in sorted(fields):
                pairs.append((self._index_of(h), len(out) - start))
                self.write_param(fields[h])
            self.refs[entry] = pairs

    # -- Pass 3: reference table --

    def merge_ref_tables(self) -> dict:
        """
        Map each struct entry whose pair block equals an earlier one onto the
        earlier entry. Returns {duplicate entry index: kept entry index}.
        """
        seen = {}
        alias = {}
        for i, entry in enumerate(self.refs):
            if isinstance(entry, str):
                continue
            key = tuple(entry)
            if key in seen:
                alias[i] = seen[key]
            else:
                seen[key] = i
        return alias

    def build_ref_table(self, alias=None):
        """Returns (ref table bytes, {str: offset}, {entry index: offset})."""
        alias = alias or {}
        table = bytearray()
        string_offsets = {}
        entry_offsets = {}
        for i, entry in enumerate(self.refs):
            if isinstance(entry, str):
                string_offsets[entry] = len(table)
                table += entry.encode('utf-8') + b'\x00'
            elif i not in alias:
                entry_offsets[i] = len(table)
                for hash_idx, param_ofs in entry:
                    table += struct.pack('<ii', hash_idx, param_ofs)
        for dup, kept in alias.items():
            entry_offsets[dup] = entry_offsets[kept]
        return table, string_offsets, entry_offsets

    # -- Pass 4: fixups --

    def resolve_refs(self, string_offsets, entry_offsets):
        for pos, struct_id in self.unresolved_structs:
            entry = self.struct_refs.get(struct_id)
            if entry is None or entry not in entry_offsets:
                raise ParamConsistencyError(f"no ref table entry for struct #{struct_id}")
            struct.pack_into('<i', self.out, pos, entry_offsets[entry])
        for pos, s in self.unresolved_strings:
            if s not in string_offsets:
                raise ParamConsistencyError(f"no ref table entry for string {s!r}")
            struct.pack_into('<i', self.out, pos, string_offsets[s])

    def write(self) -> bytes:
        self.add_hash(0)
        self.collect_hashes(self.root)
        self.write_param(self.root)

        alias = self.merge_ref_tables() if self.merge_refs else None
        ref_table, string_offsets, entry_offsets = self.build_ref_table(alias)
        self.resolve_refs(string_offsets, entry_offsets)

        hash_table = struct.pack(f'<{len(self.hashes)}Q', *self.hashes)
        return b''.join((
            MAGIC,
            struct.pack('<ii', len(hash_table), len(ref_table)),
            hash_table,
            bytes(ref_table),
            bytes(self.out),
        ))


def serialize(root: Param, merge_refs: bool = False) -> bytes:
    """
    Encode a root struct as a param file.

    merge_refs shares one pair block between structs with identical layouts.
    Off by default: files written by the other tools keep every block.
    """
    return ParamWriter(root, merge_refs).write()
