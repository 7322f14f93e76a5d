#!/usr/bin/env python
"""
Param Container (.prc) Decoder
================================
Dump a paracobn param file as a label-resolved tree.

Field names are stored as Hash40 values only; pass a label table
(ParamLabels.csv: "0xHASH,label" per line) to see readable names.

Usage:
  python prc_decoder.py fighter_param.prc                      # Tree dump
  python prc_decoder.py fighter_param.prc -l ParamLabels.csv   # With labels
  python prc_decoder.py fighter_param.prc --header             # Header + section offsets
  python prc_decoder.py fighter_param.prc --hashes             # Hash table
  python prc_decoder.py fighter_param.prc --depth 2            # Limit nesting shown
  python prc_decoder.py fighter_param.prc --json -o out.json   # JSON export
"""

import argparse
import json
import os
import sys
import warnings

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from paracobn import HashLabels, ParamReader, ParamFormatError
from paracobn.constants import TYPE_LIST, TYPE_STRUCT, TYPE_HASH


# =============================================================================
# TEXT DUMP
# =============================================================================

def dump_tree(value, labels, name='root', indent=0, max_depth=None, out=None):
    """Print one line per node: path-indented name, type and value."""
    pad = '  ' * indent
    print(f"{pad}{name:<{max(1, 40 - len(pad))}} {value.type_name:<7} {value.value_string(labels)}",
          file=out)
    if max_depth is not None and indent >= max_depth:
        return
    if value.type == TYPE_STRUCT:
        for h, v in value.value.items():
            dump_tree(v, labels, labels.resolve(h), indent + 1, max_depth, out)
    elif value.type == TYPE_LIST:
        for i, v in enumerate(value.value):
            dump_tree(v, labels, f'[{i}]', indent + 1, max_depth, out)


def dump_header(reader):
    data = reader.data
    print(f"  Size:             {len(data):,} bytes")
    print(f"  Magic:            {data[:8].decode('ascii', errors='replace')}")
    print(f"  Hash table:       0x{0x10:06X}  {reader.hash_table_size:,} bytes "
          f"({len(reader.hash_table)} entries)")
    print(f"  Reference table:  0x{reader.ref_start:06X}  {reader.ref_table_size:,} bytes")
    print(f"  Params:           0x{reader.param_start:06X}  "
          f"{len(data) - reader.param_start:,} bytes")


def dump_hashes(reader, labels):
    print(f"{'#':>5}  {'Hash':<18}  Label")
    print('-' * 60)
    for i, h in enumerate(reader.hash_table):
        label = labels.get_label(h) or ''
        print(f"{i:>5}  0x{h:016X}  {label}")


# =============================================================================
# JSON EXPORT
# =============================================================================

def to_json(value, labels):
    """Plain JSON-able form: structs become objects keyed by label or 0xHASH."""
    if value.type == TYPE_STRUCT:
        return {labels.resolve(h): to_json(v, labels) for h, v in value.value.items()}
    if value.type == TYPE_LIST:
        return [to_json(v, labels) for v in value.value]
    if value.type == TYPE_HASH:
        return labels.resolve(value.value)
    return value.value


# =============================================================================
# MAIN
# =============================================================================

def load_labels(path):
    labels = HashLabels()
    if path:
        # malformed rows are counted in labels.errors
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            n = labels.load_file(path)
        print(f"  Loaded {n} labels from {path}"
              + (f" ({labels.errors} malformed rows skipped)" if labels.errors else ''),
              file=sys.stderr)
    return labels


def main(argv=None):
    p = argparse.ArgumentParser(
        description='Param container (.prc) decoder',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s fighter_param.prc -l ParamLabels.csv
  %(prog)s fighter_param.prc --header --hashes
  %(prog)s fighter_param.prc --json -o fighter_param.json
        """)
    p.add_argument('file', help='Param file (.prc, .stprm, .stdat)')
    p.add_argument('-l', '--labels', metavar='CSV', help='Hash label table')
    p.add_argument('--header', action='store_true', help='Show header and section offsets')
    p.add_argument('--hashes', action='store_true', help='Show the hash table')
    p.add_argument('--depth', type=int, default=None, metavar='N', help='Max nesting to print')
    p.add_argument('--json', action='store_true', help='Export as JSON')
    p.add_argument('-o', '--output', metavar='FILE', help='Write output to FILE')
    args = p.parse_args(argv)

    try:
        labels = load_labels(args.labels)
        with open(args.file, 'rb') as f:
            reader = ParamReader(f.read())
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    try:
        # anomalies are reported below from reader.anomalies
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            root = reader.read()
    except ParamFormatError as e:
        print(f"ERROR: {args.file}: {e}", file=sys.stderr)
        return 1

    for msg in reader.anomalies:
        print(f"  Warning: {msg}", file=sys.stderr)

    if args.header or args.hashes:
        print(f"=== {args.file} ===")
        if args.header:
            dump_header(reader)
        if args.hashes:
            print()
            dump_hashes(reader, labels)
        return 0

    out = open(args.output, 'w', encoding='utf-8') if args.output else sys.stdout
    try:
        if args.json:
            json.dump(to_json(root, labels), out, indent=2, ensure_ascii=False)
            print(file=out)
        else:
            dump_tree(root, labels, max_depth=args.depth, out=out)
    finally:
        if out is not sys.stdout:
            out.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
