#!/usr/bin/env python
"""
Param Container (.prc) Editor
===============================
Read and modify paracobn param files from the command line.

Nodes are addressed by index path: root, root[0], root[3][1], ...
(use --list to see the paths). Struct fields are numbered in file order.

Usage:
  python prc_editor.py fighter_param.prc --list                      # Paths + values
  python prc_editor.py fighter_param.prc --get "root[0][2]"          # One node
  python prc_editor.py fighter_param.prc --set "root[0][2]=1.5"      # Change a value
  python prc_editor.py fighter_param.prc --rename "root[1]=walk_speed"
  python prc_editor.py fighter_param.prc --delete "root[4]"
  python prc_editor.py fighter_param.prc --add root float run_speed=2.0
  python prc_editor.py fighter_param.prc --set "root[0]=0x1234" -o modified.prc
  python prc_editor.py fighter_param.prc -l ParamLabels.csv --add-labels ...
"""

import argparse
import os
import sys
import warnings

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from paracobn import (
    HashLabels, Param, ParamNode, ParamDocument, ParamFormatError, NodeNotFound,
    parse_path,
)
from paracobn.constants import TYPE_HASH, TYPE_LIST, TYPE_KEYWORDS


# =============================================================================
# DISPLAY
# =============================================================================

def show_node(doc, path):
    node = doc.get(path)
    print(f"\n=== {path} ===")
    print(f"  Name:   {node.name}")
    print(f"  Hash:   0x{node.hash:X}")
    print(f"  Type:   {node.type_name}")
    print(f"  Value:  {node.value_string(doc.labels)}")
    for i, c in enumerate(node.children):
        print(f"    [{i:>3}] {c.name:<32} {c.type_name:<7} {c.value_string(doc.labels)}")


def list_paths(doc, depth=None):
    for path in doc.paths():
        level = path.count('[')
        if depth is not None and level > depth:
            continue
        node = doc.get(path)
        print(f"{path:<24} {'  ' * level}{node.name:<32} {node.type_name:<7} "
              f"{node.value_string(doc.labels)}")


# =============================================================================
# EDITS
# =============================================================================

def _split(kv):
    if '=' not in kv:
        raise ValueError(f"expected PATH=VALUE, got {kv!r}")
    return kv.split('=', 1)


def _indices(path):
    try:
        return parse_path(path)
    except NodeNotFound:
        return []


def _follow(doc, target, path):
    """Where a value pinned from path sits now."""
    now = doc.path_of(target)
    if now is None:
        raise NodeNotFound(f"{path} was removed by an earlier edit")
    return now


def key_for(doc, name, add_labels):
    """Hash for a field name: 0xHEX, a known label, or (with add_labels) a new one."""
    try:
        return doc.labels.parse_hash_or_label(name)
    except KeyError:
        if not add_labels:
            raise
        h = doc.labels.register(name)
        print(f"  Added label {name} = 0x{h:X}")
        return h


def set_value(doc, kv, add_labels):
    path, text = _split(kv)
    node = doc.get(path)
    if node.value.is_container:
        raise ValueError(f"{path} is a {node.type_name}; edit its children instead")
    if node.value.type == TYPE_HASH and add_labels and text.strip()[:2].lower() != '0x':
        key_for(doc, text.strip(), add_labels)
    value = Param.parse(node.value.type, text, doc.labels)
    if not doc.update_value(path, value):
        raise NodeNotFound(f"cannot update {path}")
    print(f"  Set {path} ({node.name}) = {value.value_string(doc.labels)}")


def rename(doc, kv, add_labels):
    path, name = _split(kv)
    h = key_for(doc, name.strip(), add_labels)
    if not doc.update_key(path, name.strip(), h):
        raise ValueError(f"cannot rename {path} (not a struct field, or the key is taken)")
    print(f"  Renamed {path} -> {name.strip()} (0x{h:X})")


def delete(doc, path):
    name = doc.get(path).name
    if not doc.delete(path):
        raise ValueError(f"cannot delete {path}")
    print(f"  Deleted {path} ({name})")


def add(doc, path, type_name, kv, add_labels):
    type_ = TYPE_KEYWORDS.get(type_name.lower())
    if type_ is None:
        raise ValueError(f"unknown type {type_name!r} (one of: {', '.join(TYPE_KEYWORDS)})")
    name, text = _split(kv)
    target = doc.get(path)
    h = key_for(doc, name.strip(), add_labels) if target.value.type != TYPE_LIST else 0
    value = Param.parse(type_, text, doc.labels)
    if not doc.insert(path, ParamNode(name.strip(), h, value)):
        raise ValueError(f"cannot add to {path}")
    print(f"  Added {type_name} {name.strip()} to {path}")


# =============================================================================
# MAIN
# =============================================================================

def main(argv=None):
    p = argparse.ArgumentParser(
        description='Param container (.prc) editor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s fighter_param.prc --list -l ParamLabels.csv
  %(prog)s fighter_param.prc --set "root[0][2]=1.5" -o modified.prc
  %(prog)s fighter_param.prc --add "root[3]" int my_field=5 --add-labels
        """)
    p.add_argument('file', help='Param file path')
    p.add_argument('-l', '--labels', metavar='CSV', help='Hash label table')
    p.add_argument('--list', action='store_true', help='List node paths')
    p.add_argument('--depth', type=int, default=None, metavar='N', help='Max depth for --list')
    p.add_argument('--get', action='append', default=[], metavar='PATH', help='Show a node')
    p.add_argument('--set', action='append', default=[], metavar='PATH=VAL', help='Set a value')
    p.add_argument('--rename', action='append', default=[], metavar='PATH=NAME',
                   help='Change a struct field key (label or 0xHASH)')
    p.add_argument('--delete', action='append', default=[], metavar='PATH',
                   help='Delete a field or list item')
    p.add_argument('--add', nargs=3, action='append', default=[],
                   metavar=('PATH', 'TYPE', 'NAME=VAL'),
                   help='Append a field (struct) or item (list) at PATH')
    p.add_argument('--add-labels', action='store_true',
                   help='Accept unknown names: hash them and add to the label table')
    p.add_argument('--merge-refs', action='store_true',
                   help='Share identical struct ref entries when saving')
    p.add_argument('-o', '--output', default=None, metavar='FILE',
                   help='Output file (default: overwrite input)')
    args = p.parse_args(argv)

    labels = HashLabels()
    try:
        # anomalies are reported below from doc.anomalies
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            if args.labels and os.path.exists(args.labels):
                labels.load_file(args.labels)
            doc = ParamDocument.open_file(args.file, labels)
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except ParamFormatError as e:
        print(f"ERROR: {args.file}: {e}", file=sys.stderr)
        return 1
    for msg in doc.anomalies:
        print(f"  Warning: {msg}", file=sys.stderr)

    n_labels = len(labels)
    modified = False
    try:
        # Paths name nodes of the file as loaded. Renames move fields to the
        # end of their struct and deletes shift siblings, so every target is
        # pinned before the first edit and followed by identity afterwards.
        sets = [(doc.value_at(path), path, text) for path, text in map(_split, args.set)]
        renames = [(doc.value_at(path), path, name) for path, name in map(_split, args.rename)]
        adds = [(doc.value_at(path), path, type_name, kv) for path, type_name, kv in args.add]
        deletes = [(doc.value_at(path), path)
                   for path in sorted(args.delete, key=_indices, reverse=True)]

        for target, path, name in renames:
            rename(doc, f"{_follow(doc, target, path)}={name}", args.add_labels)
            modified = True
        for target, path, type_name, kv in adds:
            add(doc, _follow(doc, target, path), type_name, kv, args.add_labels)
            modified = True
        for target, path in deletes:
            delete(doc, _follow(doc, target, path))
            modified = True
        # set replaces the value object, so all set paths are followed first
        for path, text in [(_follow(doc, t, p), text) for t, p, text in sets]:
            set_value(doc, f"{path}={text}", args.add_labels)
            modified = True
    except (ValueError, KeyError, LookupError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if modified:
        out = args.output or args.file
        try:
            n = doc.save(out, merge_refs=args.merge_refs)
        except OSError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        print(f"  Saved {n:,} bytes to {out}")
        if args.labels and len(labels) != n_labels:
            labels.save_file(args.labels)
            print(f"  Saved {len(labels)} labels to {args.labels}")

    try:
        for path in args.get:
            show_node(doc, path)
    except NodeNotFound as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if args.list:
        list_paths(doc, args.depth)
    elif not modified and not args.get:
        root = doc.node
        print(f"=== {args.file} ===")
        print(f"  Root:   {root.value_string(labels)}")
        print(f"  Labels: {len(labels)}")
        print(f"\n  Use --list to see node paths, --get PATH for detail, --set PATH=VAL to edit.")
    return 0


if __name__ == '__main__':
    sys.exit(main())
