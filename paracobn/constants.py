"""
paracobn: Format constants and lookup tables.

All multi-byte fields are little-endian. Offsets stored inside the file are
relative (see paramfile.py for the base each one is measured from).
"""

# =============================================================================
# FILE LAYOUT
# =============================================================================

MAGIC = b"paracobn"
HEADER_SIZE = 0x10          # magic (8) + hash table size (4) + ref table size (4)
HASH_ENTRY_SIZE = 8         # uint64 per hash table entry
REF_PAIR_SIZE = 8           # int32 hash index + int32 param offset


# =============================================================================
# TYPE TAGS
# =============================================================================

TYPE_BOOL   = 1
TYPE_I8     = 2
TYPE_U8     = 3
TYPE_I16    = 4
TYPE_U16    = 5
TYPE_I32    = 6
TYPE_U32    = 7
TYPE_F32    = 8
TYPE_HASH   = 9
TYPE_STRING = 10
TYPE_LIST   = 11
TYPE_STRUCT = 12

# Fixed-width scalars: tag -> struct format of the payload
SCALAR_FORMATS = {
    TYPE_BOOL: '<B',
    TYPE_I8:   '<b',
    TYPE_U8:   '<B',
    TYPE_I16:  '<h',
    TYPE_U16:  '<H',
    TYPE_I32:  '<i',
    TYPE_U32:  '<I',
    TYPE_F32:  '<f',
}

# Inclusive value ranges for the integer types
INT_RANGES = {
    TYPE_I8:   (-0x80, 0x7F),
    TYPE_U8:   (0, 0xFF),
    TYPE_I16:  (-0x8000, 0x7FFF),
    TYPE_U16:  (0, 0xFFFF),
    TYPE_I32:  (-0x80000000, 0x7FFFFFFF),
    TYPE_U32:  (0, 0xFFFFFFFF),
    TYPE_HASH: (0, 0xFFFFFFFFFFFFFFFF),
}

# Display names, as shown in the editor's type column
TYPE_NAMES = {
    TYPE_BOOL:   "Bool",
    TYPE_I8:     "SByte",
    TYPE_U8:     "Byte",
    TYPE_I16:    "Short",
    TYPE_U16:    "UShort",
    TYPE_I32:    "Int",
    TYPE_U32:    "UInt",
    TYPE_F32:    "Float",
    TYPE_HASH:   "Hash40",
    TYPE_STRING: "String",
    TYPE_LIST:   "List",
    TYPE_STRUCT: "Struct",
}

# Names accepted on the command line / in value entry (paracobNET spelling)
TYPE_KEYWORDS = {
    "bool":   TYPE_BOOL,
    "sbyte":  TYPE_I8,
    "byte":   TYPE_U8,
    "short":  TYPE_I16,
    "ushort": TYPE_U16,
    "int":    TYPE_I32,
    "uint":   TYPE_U32,
    "float":  TYPE_F32,
    "hash40": TYPE_HASH,
    "string": TYPE_STRING,
    "list":   TYPE_LIST,
    "struct": TYPE_STRUCT,
}


def unknown_tag_size(tag: int) -> int:
    """Bytes skipped after an unrecognised type tag (> 12)."""
    if tag < 50:
        return 4
    if tag < 100:
        return 8
    return 12


# =============================================================================
# HASH LABELS
# =============================================================================

MASK64 = 0xFFFFFFFFFFFFFFFF

# Reinterpretations tried by HashLabels.resolve() after an exact miss, in order.
# Older tools truncated or sign-extended hashes in different ways.
RESOLVE_FALLBACKS = (
    lambda h: h & 0x00FFFFFFFFFFFFFF,   # 56-bit
    lambda h: h & 0x0000FFFFFFFFFFFF,   # 48-bit
    lambda h: h & 0x000000FFFFFFFFFF,   # 40-bit (Hash40 proper)
    lambda h: h & 0x00000000FFFFFFFF,   # 32-bit (CRC only)
    lambda h: h | 0xFF00000000000000,   # top byte set
    lambda h: h | 0xFFFF000000000000,   # top two bytes set
    lambda h: h & 0x7FFFFFFFFFFFFFFF,   # sign bit cleared
    lambda h: h | 0x8000000000000000,   # sign bit set
)


# =============================================================================
# LIMITS
# =============================================================================

DEFAULT_MAX_DEPTH = 512     # nesting cap while parsing
MAX_INSERT_ATTEMPTS = 1000  # hash + 1 .. hash + N probed on struct key collision
ROOT_PATH = "root"
