"""
paracobn: Typed value tree.

A decoded param file is a tree of Param values. Every Param carries its type
tag (constants.TYPE_*) and a Python value:

    Bool            bool
    I8 .. U32       int (range checked)
    F32             float (rounded to single precision)
    Hash            int, 0 .. 2**64-1
    String          str
    List            list of Param
    Struct          dict of hash -> Param, insertion ordered

Struct insertion order is part of the document: the writer collects hashes in
that order, so it is kept apart from the hash-sorted order used on disk.
"""

import struct

from .constants import (
    TYPE_BOOL, TYPE_I8, TYPE_U8, TYPE_I16, TYPE_U16, TYPE_I32, TYPE_U32,
    TYPE_F32, TYPE_HASH, TYPE_STRING, TYPE_LIST, TYPE_STRUCT,
    INT_RANGES, TYPE_NAMES,
)


def to_f32(v: float) -> float:
    """Round a Python float to the nearest IEEE-754 single."""
    return struct.unpack('<f', struct.pack('<f', v))[0]


class Param:
    """One value of the tree; see the module docstring for the value types."""

    __slots__ = ('type', 'value', 'raw_tag', 'raw_size')

    def __init__(self, type_: int, value):
        if type_ not in TYPE_NAMES:
            raise ValueError(f"unknown param type {type_}")
        self.type = type_
        self.value = self._check(type_, value)
        # Set only on placeholders for tags the reader did not recognise
        self.raw_tag = None
        self.raw_size = None

    @staticmethod
    def _check(type_, value):
        if type_ == TYPE_BOOL:
            return bool(value)
        if type_ in INT_RANGES:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{TYPE_NAMES[type_]} needs an int, got {value!r}")
            lo, hi = INT_RANGES[type_]
            if not lo <= value <= hi:
                raise ValueError(f"{TYPE_NAMES[type_]} out of range: {value}")
            return value
        if type_ == TYPE_F32:
            try:
                return to_f32(float(value))
            except OverflowError:
                raise ValueError(f"Float out of range: {value}") from None
        if type_ == TYPE_STRING:
            if not isinstance(value, str):
                raise ValueError(f"String needs a str, got {value!r}")
            if '\x00' in value:
                raise ValueError("String may not contain NUL")
            return value
        if type_ == TYPE_LIST:
            items = list(value)
            for item in items:
                if not isinstance(item, Param):
                    raise ValueError(f"List item is not a Param: {item!r}")
            return items
        # TYPE_STRUCT
        fields = dict(value)
        for h, item in fields.items():
            lo, hi = INT_RANGES[TYPE_HASH]
            if isinstance(h, bool) or not isinstance(h, int) or not lo <= h <= hi:
                raise ValueError(f"Struct key is not a 64-bit hash: {h!r}")
            if not isinstance(item, Param):
                raise ValueError(f"Struct field 0x{h:X} is not a Param: {item!r}")
        return fields

    # -- Constructors --

    @classmethod
    def bool_(cls, v):   return cls(TYPE_BOOL, v)
    @classmethod
    def i8(cls, v):      return cls(TYPE_I8, v)
    @classmethod
    def u8(cls, v):      return cls(TYPE_U8, v)
    @classmethod
    def i16(cls, v):     return cls(TYPE_I16, v)
    @classmethod
    def u16(cls, v):     return cls(TYPE_U16, v)
    @classmethod
    def i32(cls, v):     return cls(TYPE_I32, v)
    @classmethod
    def u32(cls, v):     return cls(TYPE_U32, v)
    @classmethod
    def f32(cls, v):     return cls(TYPE_F32, v)
    @classmethod
    def hash(cls, v):    return cls(TYPE_HASH, v)
    @classmethod
    def string(cls, v):  return cls(TYPE_STRING, v)

    @classmethod
    def list(cls, items=()):
        return cls(TYPE_LIST, items)

    @classmethod
    def struct(cls, fields=None):
        return cls(TYPE_STRUCT, fields or {})

    @classmethod
    def unknown(cls, tag: int, size: int):
        """Placeholder for an unrecognised tag: a UInt holding the tag number."""
        p = cls(TYPE_U32, tag)
        p.raw_tag = tag
        p.raw_size = size
        return p

    @classmethod
    def parse(cls, type_: int, text: str, labels=None):
        """
        Build a value of the given type from user text.

        Integers accept 0x prefixes; hashes accept 0xHEX or, with labels,
        a known label. Lists and structs can only be created empty.
        """
        s = text.strip()
        if type_ == TYPE_BOOL:
            low = s.lower()
            if low in ('true', '1', 'yes'):
                return cls(type_, True)
            if low in ('false', '0', 'no'):
                return cls(type_, False)
            raise ValueError(f"not a bool: {text!r}")
        if type_ == TYPE_HASH:
            if labels is not None:
                return cls(type_, labels.parse_hash_or_label(s))
            return cls(type_, int(s, 16) if s[:2].lower() == '0x' else int(s))
        if type_ in INT_RANGES:
            return cls(type_, int(s, 0))
        if type_ == TYPE_F32:
            return cls(type_, float(s))
        if type_ == TYPE_STRING:
            return cls(type_, text)
        if s not in ('', '[]', '{}'):
            raise ValueError(f"{TYPE_NAMES[type_]} values can only be created empty")
        return cls(type_, ())

    # -- Queries --

    @property
    def type_name(self) -> str:
        return TYPE_NAMES[self.type]

    @property
    def is_container(self) -> bool:
        return self.type in (TYPE_LIST, TYPE_STRUCT)

    def value_string(self, labels=None) -> str:
        """Short text form, as shown in the editor's value column."""
        if self.type == TYPE_BOOL:
            return 'true' if self.value else 'false'
        if self.type == TYPE_F32:
            return repr(self.value)
        if self.type == TYPE_HASH:
            return labels.resolve(self.value) if labels is not None else f"0x{self.value:X}"
        if self.type == TYPE_LIST:
            return f"List ({len(self.value)} items)"
        if self.type == TYPE_STRUCT:
            return f"Struct ({len(self.value)} fields)"
        return str(self.value)

    def copy(self):
        """Deep copy; the tree never shares nodes between owners."""
        if self.type == TYPE_LIST:
            items = []
            for item in self.value:
                items.append(item.copy())
            p = Param(TYPE_LIST, items)
        elif self.type == TYPE_STRUCT:
            fields = {}
            for h, item in self.value.items():
                fields[h] = item.copy()
            p = Param(TYPE_STRUCT, fields)
        else:
            p = Param(self.type, self.value)
        p.raw_tag = self.raw_tag
        p.raw_size = self.raw_size
        return p

    def __eq__(self, other):
        if not isinstance(other, Param):
            return NotImplemented
        if self.type != other.type:
            return False
        if self.type == TYPE_STRUCT:
            # field order is significant
            return list(self.value.items()) == list(other.value.items())
        return self.value == other.value

    __hash__ = None

    def __repr__(self):
        if self.type == TYPE_STRUCT:
            inner = ', '.join(f"0x{h:X}: {v!r}" for h, v in self.value.items())
            return f"Param.struct({{{inner}}})"
        if self.type == TYPE_LIST:
            return f"Param.list({self.value!r})"
        if self.type == TYPE_HASH:
            return f"Param.hash(0x{self.value:X})"
        return f"Param({self.type_name}, {self.value!r})"
