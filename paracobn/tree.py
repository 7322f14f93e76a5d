"""
paracobn: Display tree and document session.

ParamDocument owns the canonical tree (a root struct of Param values) and the
HashLabels used to name it. ParamNode is a name-resolved copy of that tree for
browsing; it is rebuilt from the canonical tree after every change and is
never edited on its own.

Nodes are addressed by index paths:

    root            the root struct
    root[2]         third field of the root
    root[2][0]      first child of that field (struct field or list item)

Struct children are numbered in field insertion order, list children by index.
"""

import re

from .constants import (
    TYPE_LIST, TYPE_STRUCT, MASK64, MAX_INSERT_ATTEMPTS, ROOT_PATH,
)
from .hash40 import HashLabels
from .params import Param
from .paramfile import ParamReader, serialize


class NodeNotFound(LookupError):
    """A path is malformed or does not lead to a node."""


_PATH_RE = re.compile(r'root((?:\[\d+\])*)')
_INDEX_RE = re.compile(r'\[(\d+)\]')


def parse_path(path: str) -> list:
    """'root[1][0]' -> [1, 0]. Raises NodeNotFound on bad syntax."""
    m = _PATH_RE.fullmatch(path.strip())
    if m is None:
        raise NodeNotFound(f"invalid node path: {path!r}")
    return [int(i) for i in _INDEX_RE.findall(m.group(1))]


def format_path(indices) -> str:
    return ROOT_PATH + ''.join(f'[{i}]' for i in indices)


# =============================================================================
# DISPLAY TREE
# =============================================================================

class ParamNode:
    """A (name, hash, value) triple with its children materialised."""

    def __init__(self, name: str, hash_: int, value: Param, children=None):
        self.name = name
        self.hash = hash_
        self.value = value
        self.children = children if children is not None else []

    @classmethod
    def from_value(cls, hash_: int, value: Param, labels: HashLabels, name: str = None):
        """Build a node (and its subtree) from a canonical value. The value is copied."""
        node = cls(name if name is not None else labels.resolve(hash_), hash_, value.copy())
        # one stack frame per nesting level, so no comprehensions
        if value.type == TYPE_STRUCT:
            for h, v in value.value.items():
                node.children.append(cls.from_value(h, v, labels))
        elif value.type == TYPE_LIST:
            for i, v in enumerate(value.value):
                node.children.append(cls.from_value(i, v, labels, name=f'[{i}]'))
        return node

    @property
    def type_name(self) -> str:
        return self.value.type_name

    @property
    def is_expandable(self) -> bool:
        return bool(self.children) or self.value.is_container

    def value_string(self, labels: HashLabels = None) -> str:
        return self.value.value_string(labels)

    def child(self, indices):
        node = self
        for i in indices:
            if not 0 <= i < len(node.children):
                return None
            node = node.children[i]
        return node

    def __repr__(self):
        return f"ParamNode({self.name!r}, 0x{self.hash:X}, {self.type_name})"


# =============================================================================
# DOCUMENT
# =============================================================================

class ParamDocument:
    """
    One open param file: canonical root, labels, and the display tree.

    All edits go to the canonical tree first; the display tree is then
    regenerated wholesale by rebuild().
    """

    def __init__(self, root: Param = None, labels: HashLabels = None, filename: str = ''):
        self.root = root if root is not None else Param.struct()
        if self.root.type != TYPE_STRUCT:
            raise ValueError("document root must be a struct")
        self.labels = labels if labels is not None else HashLabels()
        self.filename = filename
        self.root_hash = 0
        self.root_name = None       # display-only rename of the root
        self.anomalies = []
        self.node = None
        self.rebuild()

    # -- Open / save --

    @classmethod
    def open(cls, data, filename: str = '', labels: HashLabels = None, **kw):
        """Parse raw bytes. Raises ParamFormatError; no document on failure."""
        reader = ParamReader(data, **kw)
        root = reader.read()
        doc = cls(root, labels, filename)
        doc.anomalies = reader.anomalies
        return doc

    @classmethod
    def open_file(cls, path, labels: HashLabels = None, **kw):
        with open(path, 'rb') as f:
            data = f.read()
        return cls.open(data, str(path), labels, **kw)

    def to_bytes(self, merge_refs: bool = False) -> bytes:
        return serialize(self.root, merge_refs)

    def save(self, path=None, merge_refs: bool = False) -> int:
        """Write the document; returns the byte count. The tree is not touched."""
        data = self.to_bytes(merge_refs)
        path = path or self.filename
        with open(path, 'wb') as f:
            f.write(data)
        return len(data)

    def rebuild(self):
        """Regenerate the display tree from the canonical tree and current labels."""
        self.node = ParamNode.from_value(self.root_hash, self.root, self.labels, self.root_name)

    # -- Navigation --

    def get(self, path: str) -> ParamNode:
        node = self.node.child(parse_path(path))
        if node is None:
            raise NodeNotFound(f"no node at {path}")
        return node

    def parent_path(self, path: str):
        indices = parse_path(path)
        return format_path(indices[:-1]) if indices else None

    def paths(self, expanded=None):
        """
        Depth-first list of node paths. With expanded (a set of paths), only
        children of expanded nodes are listed, as in a collapsed tree view.
        """
        result = []

        def walk(node, indices):
            path = format_path(indices)
            result.append(path)
            if expanded is not None and path not in expanded:
                return
            for i, c in enumerate(node.children):
                walk(c, indices + [i])

        walk(self.node, [])
        return result

    def value_at(self, path: str) -> Param:
        """Canonical value at path (not a copy). Raises NodeNotFound."""
        value = self._container(parse_path(path))
        if value is None:
            raise NodeNotFound(f"no node at {path}")
        return value

    def path_of(self, value: Param):
        """
        Current path of a canonical value, found by identity, or None once it
        has left the tree. Edits that reorder fields change paths but keep
        the value objects, so a value_at() result can be followed across them.
        """
        stack = [(self.root, [])]
        while stack:
            p, indices = stack.pop()
            if p is value:
                return format_path(indices)
            if p.type == TYPE_STRUCT:
                children = p.value.values()
            elif p.type == TYPE_LIST:
                children = p.value
            else:
                continue
            for i, child in enumerate(children):
                stack.append((child, indices + [i]))
        return None

    def _container(self, indices):
        """Canonical value at indices, or None."""
        p = self.root
        for i in indices:
            if p.type == TYPE_STRUCT:
                if not 0 <= i < len(p.value):
                    return None
                p = list(p.value.values())[i]
            elif p.type == TYPE_LIST:
                if not 0 <= i < len(p.value):
                    return None
                p = p.value[i]
            else:
                return None
        return p

    def _slot(self, path):
        """(parent container, child index) for a non-root path, or None."""
        try:
            indices = parse_path(path)
        except NodeNotFound:
            return None
        if not indices:
            return None
        parent = self._container(indices[:-1])
        if parent is None or not parent.is_container:
            return None
        i = indices[-1]
        if not 0 <= i < len(parent.value):
            return None
        return parent, i

    # -- Edits --

    def update_value(self, path: str, value: Param) -> bool:
        """Replace the value at path. The root can only be replaced by a struct."""
        value = value.copy()
        try:
            is_root = not parse_path(path)
        except NodeNotFound:
            return False
        if is_root:
            if value.type != TYPE_STRUCT:
                return False
            self.root = value
        else:
            slot = self._slot(path)
            if slot is None:
                return False
            parent, i = slot
            if parent.type == TYPE_STRUCT:
                parent.value[list(parent.value)[i]] = value
            else:
                parent.value[i] = value
        self.rebuild()
        return True

    def update_key(self, path: str, name: str, hash_: int) -> bool:
        """
        Re-key a struct field. The field is removed and re-added, so it moves
        to the end of its struct. Fails on list items and when hash_ already
        names another field of the same struct.

        Side effect: unless name is what the labels already resolve hash_ to,
        or is just its 0xHEX form, name is registered for hash_ in
        self.labels (shared with every other user of that HashLabels).
        """
        if not 0 <= hash_ <= MASK64:
            return False
        try:
            is_root = not parse_path(path)
        except NodeNotFound:
            return False
        if is_root:
            self.root_name = name
            self.root_hash = hash_
            self.rebuild()
            return True

        slot = self._slot(path)
        if slot is None:
            return False
        parent, i = slot
        if parent.type != TYPE_STRUCT:
            return False
        old = list(parent.value)[i]
        if hash_ != old and hash_ in parent.value:
            return False

        if self.labels.resolve(hash_) != name and name != f"0x{hash_:X}":
            self.labels.register_for_hash(hash_, name)
        parent.value[hash_] = parent.value.pop(old)
        self.rebuild()
        return True

    def delete(self, path: str) -> bool:
        """Remove a struct field or list item. The root cannot be deleted."""
        slot = self._slot(path)
        if slot is None:
            return False
        parent, i = slot
        if parent.type == TYPE_STRUCT:
            del parent.value[list(parent.value)[i]]
        else:
            del parent.value[i]
        self.rebuild()
        return True

    def insert(self, path: str, node: ParamNode) -> bool:
        """
        Append node's value to the struct or list at path.

        In a struct the field is keyed by node.hash; if that is taken,
        node.hash + 1, + 2, ... are tried up to MAX_INSERT_ATTEMPTS.
        """
        try:
            target = self._container(parse_path(path))
        except NodeNotFound:
            return False
        if target is None:
            return False

        value = node.value.copy()
        if target.type == TYPE_LIST:
            target.value.append(value)
        elif target.type == TYPE_STRUCT:
            for attempt in range(MAX_INSERT_ATTEMPTS + 1):
                h = (node.hash + attempt) & MASK64
                if h not in target.value:
                    break
            else:
                return False
            target.value[h] = value
        else:
            return False
        self.rebuild()
        return True
