#!/usr/bin/env python
"""
Hash40 Label Tool
==================
Compute Hash40 values and maintain a hash label table (ParamLabels.csv).

  hash40(label) = (byte length << 32) | CRC-32(label)

Usage:
  python hash40_tool.py hash fighter_param walk_speed      # Print hashes
  python hash40_tool.py lookup 0x0A4C3D5E2F -l ParamLabels.csv
  python hash40_tool.py search walk -l ParamLabels.csv     # Substring search
  python hash40_tool.py add my_new_param -l ParamLabels.csv
  python hash40_tool.py name 0x0B1234ABCD some_name -l ParamLabels.csv
  python hash40_tool.py sort -l ParamLabels.csv            # Normalise + sort file
"""

import argparse
import os
import sys
import warnings

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from paracobn import HashLabels, hash40


def parse_hash(s):
    """Parse a hash from string (0x hex prefix, or decimal)."""
    s = s.strip()
    if s.startswith(('0x', '0X')):
        return int(s, 16)
    return int(s)


def main(argv=None):
    p = argparse.ArgumentParser(
        description='Hash40 label tool',
        formatter_class=argparse.RawDescriptionHelpFormatter)
    p.add_argument('-l', '--labels', metavar='CSV', help='Hash label table')
    sub = p.add_subparsers(dest='command', required=True)

    s = sub.add_parser('hash', help='Print Hash40 of labels')
    s.add_argument('words', nargs='+')
    s = sub.add_parser('lookup', help='Resolve hashes to labels')
    s.add_argument('hashes', nargs='+', type=parse_hash)
    s = sub.add_parser('search', help='Find labels / hashes containing text')
    s.add_argument('text')
    s = sub.add_parser('add', help='Add labels under their own Hash40')
    s.add_argument('words', nargs='+')
    s = sub.add_parser('name', help='Name an existing hash')
    s.add_argument('hash', type=parse_hash)
    s.add_argument('label')
    sub.add_parser('sort', help='Rewrite the label table sorted by hash')
    args = p.parse_args(argv)

    labels = HashLabels()
    if args.labels and os.path.exists(args.labels):
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            try:
                n = labels.load_file(args.labels)
            except OSError as e:
                print(f"ERROR: {e}", file=sys.stderr)
                return 1
        if labels.errors:
            print(f"  {args.labels}: {n} labels, {labels.errors} malformed rows skipped",
                  file=sys.stderr)

    if args.command == 'hash':
        for w in args.words:
            print(f"0x{hash40(w):010X}  {w}")
        return 0

    if args.command == 'lookup':
        for h in args.hashes:
            print(f"0x{h:010X}  {labels.resolve(h)}")
        return 0

    if args.command == 'search':
        for h, label in labels.filter(args.text):
            print(f"0x{h:010X}  {label}")
        return 0

    if args.command == 'add':
        for w in args.words:
            print(f"  Added 0x{labels.register(w):010X}  {w}")
    elif args.command == 'name':
        try:
            labels.register_for_hash(args.hash, args.label)
        except ValueError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        print(f"  Named 0x{args.hash:010X}  {args.label}")

    if not args.labels:
        print("ERROR: --labels is required to save", file=sys.stderr)
        return 1
    try:
        labels.save_file(args.labels)
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    print(f"  Saved {len(labels)} labels to {args.labels}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
