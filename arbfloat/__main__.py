#
# Decoding of generic binary floating-point encodings to arbitrary precision
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

import argparse
import logging
import sys

from arbfloat import BINARY3, BINARY16, BINARY32, BINARY64, FormatDesc, decode, decode_float


logger = logging.getLogger('arbfloat')

named_formats = {
    'binary16': BINARY16,
    'binary32': BINARY32,
    'binary64': BINARY64,
}

# (format, raw encoding) pairs shown by the demo
examples = (
    (BINARY32, 0x8000_0000),                   # -0.0
    (BINARY32, 0x7F80_0000),                   # infinity
    (BINARY32, 0x7FC0_0000),                   # quiet NaN
    (BINARY32, 0x3F80_0000),                   # 1.0
    (BINARY64, 0x3FF0_0000_0000_0000),         # 1.0
)


def print_examples():
    for fmt, raw in examples:
        print(repr(decode(fmt, raw)))


def print_binary3():
    for raw in range(1 << BINARY3.width):
        print(repr(decode(BINARY3, raw)))


def run_demo(_args, _parser):
    print_examples()
    print()
    print_binary3()


def run_decode(args, parser):
    if (args.frac_bits is None) != (args.exp_bits is None):
        parser.error('--frac-bits and --exp-bits must be given together')
    if args.float and (args.frac_bits is not None or args.format not in (None, 'binary64')):
        parser.error('--float decodes binary64 only')

    if args.frac_bits is not None:
        try:
            fmt = FormatDesc(args.frac_bits, args.exp_bits)
        except ValueError as e:
            parser.error(str(e))
    else:
        fmt = named_formats[args.format or 'binary32']
    logger.info('decoding with %r', fmt)

    for text in args.values:
        try:
            if args.float:
                value = decode_float(float(text))
            else:
                value = decode(fmt, int(text, 0))
        except ValueError as e:
            parser.error(f'cannot decode {text!r}: {e}')
        print(repr(value))


def parse_args(argv):
    parser = argparse.ArgumentParser(
        prog='arbfloat',
        description='Decode binary floating point encodings to arbitrary precision.'
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='log each decoded field')
    commands = parser.add_subparsers(dest='command')

    demo = commands.add_parser('demo', help='decode a fixed list of examples (the default)')
    demo.set_defaults(func=run_demo)

    dec = commands.add_parser('decode', help='decode raw encodings')
    dec.add_argument('values', nargs='+', metavar='VALUE',
                     help='raw encodings, e.g. 0x3f800000, or floats with --float')
    dec.add_argument('-f', '--format', choices=sorted(named_formats),
                     help='standard format of the encodings (default: binary32)')
    dec.add_argument('--frac-bits', type=int, help='fraction width of an ad-hoc format')
    dec.add_argument('--exp-bits', type=int, help='exponent width of an ad-hoc format')
    dec.add_argument('--float', action='store_true',
                     help='treat values as Python float literals (binary64)')
    dec.set_defaults(func=run_decode)

    args = parser.parse_args(argv)
    if args.command is None:
        args.func = run_demo
    return args, parser


def main(argv=None):
    args, parser = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')
    args.func(args, parser)
    return 0


if __name__ == '__main__':
    sys.exit(main())
