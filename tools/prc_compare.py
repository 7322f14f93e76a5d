#!/usr/bin/env python
"""
Param Container Roundtrip Comparison Tool

Parses a param file, re-serializes it and reports how the rebuilt bytes
differ from the original, section by section:
  - Header sizes (hash table / reference table)
  - Hash table order and membership
  - Reference table (struct pair blocks, string pool)
  - Param section bytes
  - Value-level equality of the decoded trees

Can also compare two existing files (e.g. original vs. edited).

Usage:
  python prc_compare.py fighter_param.prc                   # Roundtrip self-test
  python prc_compare.py ORIGINAL.prc REBUILT.prc            # Compare two files
  python prc_compare.py fighter_param.prc --merge-refs      # Rebuild with merged refs
  python prc_compare.py fighter_param.prc --verbose
"""

import argparse
import os
import sys
import warnings

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from paracobn import ParamReader, ParamFormatError, serialize


def sections(reader):
    data = reader.data
    return {
        'hash table': data[0x10:reader.ref_start],
        'ref table':  data[reader.ref_start:reader.param_start],
        'params':     data[reader.param_start:],
    }


def first_difference(a: bytes, b: bytes):
    for i, (x, y) in enumerate(zip(a, b)):
        if x != y:
            return i
    return None if len(a) == len(b) else min(len(a), len(b))


def compare(data_a: bytes, data_b: bytes, verbose=False) -> bool:
    """Print a report; True when the files are byte-identical."""
    ra, rb = ParamReader(data_a), ParamReader(data_b)
    root_a, root_b = ra.read(), rb.read()

    print(f"  Size:        {len(data_a):,} vs {len(data_b):,} bytes")
    print(f"  Hash table:  {len(ra.hash_table)} vs {len(rb.hash_table)} entries")
    print(f"  Ref table:   {ra.ref_table_size:,} vs {rb.ref_table_size:,} bytes")

    if data_a == data_b:
        print("\n  IDENTICAL")
        return True

    sa, sb = sections(ra), sections(rb)
    for name in sa:
        pos = first_difference(sa[name], sb[name])
        if pos is None:
            print(f"  {name:<11}  identical")
            continue
        print(f"  {name:<11}  DIFFERS at +0x{pos:X}")
        if verbose:
            a = ' '.join(f'{b:02X}' for b in sa[name][pos:pos + 16])
            b = ' '.join(f'{b:02X}' for b in sb[name][pos:pos + 16])
            print(f"      a: {a}")
            print(f"      b: {b}")

    if set(ra.hash_table) == set(rb.hash_table):
        if ra.hash_table != rb.hash_table:
            print("  Hash table has the same entries in a different order")
    else:
        only_a = set(ra.hash_table) - set(rb.hash_table)
        only_b = set(rb.hash_table) - set(ra.hash_table)
        print(f"  Hashes only in a: {len(only_a)}, only in b: {len(only_b)}")
        if verbose:
            for h in sorted(only_a):
                print(f"      a: 0x{h:X}")
            for h in sorted(only_b):
                print(f"      b: 0x{h:X}")

    if root_a == root_b:
        print("\n  Decoded trees are equal (value-level roundtrip OK)")
    else:
        print("\n  Decoded trees DIFFER")
    return False


def main(argv=None):
    p = argparse.ArgumentParser(description='Param container roundtrip comparison')
    p.add_argument('original', help='Param file')
    p.add_argument('other', nargs='?', default=None,
                   help='File to compare against (default: re-serialized original)')
    p.add_argument('--merge-refs', action='store_true',
                   help='Merge identical struct ref entries when re-serializing')
    p.add_argument('-v', '--verbose', action='store_true')
    args = p.parse_args(argv)

    try:
        with open(args.original, 'rb') as f:
            original = f.read()
        if args.other:
            with open(args.other, 'rb') as f:
                other = f.read()
        # the report compares bytes; decode anomalies are not repeated here
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            if not args.other:
                other = serialize(ParamReader(original).read(), merge_refs=args.merge_refs)
            print(f"=== {args.original} vs {args.other or 'rebuilt'} ===")
            same = compare(original, other, args.verbose)
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    except ParamFormatError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    return 0 if same else 1


if __name__ == '__main__':
    sys.exit(main())
