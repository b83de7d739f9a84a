"""
huff: compress and restore files with static Huffman coding.

How to run:
  huff encode notes.txt                 -> notes.txt.huff
  huff encode notes.txt -o notes.bin --stats
  huff decode notes.txt.huff            -> notes.txt
  huff decode notes.bin -o restored.txt
"""

import argparse
import os
import sys
from typing import List, Optional

import codec
from codec import HuffmanError

__version__ = "0.1.0"

SUFFIX = ".huff"


def default_output(command: str, input_path: str) -> str:
    if command == "encode":
        return input_path + SUFFIX
    if input_path.endswith(SUFFIX) and len(input_path) > len(SUFFIX):
        return input_path[: -len(SUFFIX)]
    return input_path + ".out"


def print_stats(command: str, report: codec.CodingReport) -> None:
    print(f"{command}: {report.input_bytes} -> {report.output_bytes} bytes")
    print(f"  distinct symbols: {report.unique_symbols}")
    print(f"  bitstream: {report.bitstream_bits} bits ({report.pad_bits} padding)")
    if command == "encode" and report.input_bytes:
        print(f"  ratio: {report.ratio:.3f}")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="huff", description="Static Huffman file compressor")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = ap.add_subparsers(dest="command", required=True)

    for name, help_text in (("encode", "Encode a file"), ("decode", "Decode a file")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("input", help="The input file")
        p.add_argument("-o", dest="output", default=None,
                       help=f"The output file (default: derived from input, '{SUFFIX}' suffix)")
        p.add_argument("--stats", action="store_true", help="Print sizes and bit counts")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if not os.path.isfile(args.input):
        print(f"huff: cannot open input file '{args.input}'", file=sys.stderr)
        return 1
    output = args.output or default_output(args.command, args.input)

    run = codec.encode_file if args.command == "encode" else codec.decode_file
    try:
        report = run(args.input, output)
    except HuffmanError as e:
        print(f"huff: {args.command} failed: corrupt input '{args.input}': {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"huff: {args.command} failed: {e}", file=sys.stderr)
        return 1

    if args.stats:
        print_stats(args.command, report)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
