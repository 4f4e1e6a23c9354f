#
# Decoding of generic binary floating-point encodings to arbitrary precision
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

import logging
from collections import namedtuple
from enum import IntEnum
from fractions import Fraction
from struct import Struct

import attr

__all__ = ('FloatKind', 'ArbFloat', 'FormatDesc', 'FieldTuple', 'InvalidFormat',
           'decode', 'decode_bytes', 'decode_float', 'trailing_zeros', 'bit_mask',
           'STORAGE_WIDTH', 'BINARY16', 'BINARY32', 'BINARY64', 'BINARY3')


logger = logging.getLogger(__name__)

# Raw encodings are held in an unsigned integer of this many bits.
STORAGE_WIDTH = 64

FieldTuple = namedtuple('FieldTuple', 'sign biased_exponent fraction')
pack_double = Struct('=d').pack


class InvalidFormat(ValueError):
    '''Raised when a format description cannot be used, for example because its fields do
    not fit in STORAGE_WIDTH bits.'''


class FloatKind(IntEnum):
    REGULAR = 0       # Normal or subnormal
    ZERO = 1
    INFINITY = 2
    NAN = 3


def bit_mask(bits):
    '''Return an integer with the low bits set.'''
    return (1 << bits) - 1


def trailing_zeros(value):
    '''Return the number of trailing zero bits of a non-zero integer.  The sign of value is
    irrelevant.'''
    if not value:
        raise ValueError('zero has no trailing zero count')
    return (value & -value).bit_length() - 1


@attr.s(slots=True, frozen=True, repr=False)
class FormatDesc:
    '''The bit layout of a binary floating point encoding.

    From least to most significant bit, an encoding comprises frac_bits of fraction,
    exp_bits of biased exponent and a single sign bit.  Everything else about the format
    is derived from those two widths.  The whole encoding must fit in STORAGE_WIDTH bits.
    '''

    frac_bits = attr.ib()
    exp_bits = attr.ib()

    def __attrs_post_init__(self):
        if not all(isinstance(arg, int) for arg in (self.frac_bits, self.exp_bits)):
            raise TypeError('frac_bits and exp_bits must be integers')
        if self.frac_bits < 0:
            raise InvalidFormat(f'frac_bits cannot be negative: {self.frac_bits}')
        if self.exp_bits < 1:
            raise InvalidFormat(f'exp_bits must be at least 1: {self.exp_bits}')
        if self.width > STORAGE_WIDTH:
            raise InvalidFormat(f'a {self.width}-bit format does not fit in '
                                f'{STORAGE_WIDTH} bits of storage')

    @classmethod
    def from_IEEE(cls, fmt_width):
        '''The IEEE-754 interchange format of the given width.'''
        try:
            return _IEEE_formats[fmt_width]
        except KeyError:
            raise InvalidFormat(f'no IEEE-754 format of width {fmt_width} fits in '
                                f'{STORAGE_WIDTH} bits') from None

    def __repr__(self):
        return f'FormatDesc(frac_bits={self.frac_bits}, exp_bits={self.exp_bits})'

    @property
    def precision(self):
        '''Significand bits including the implicit integer bit.'''
        return self.frac_bits + 1

    @property
    def width(self):
        '''Bits in an encoding including the sign bit.'''
        return self.frac_bits + self.exp_bits + 1

    @property
    def frac_shift(self):
        return 0

    @property
    def frac_mask(self):
        return bit_mask(self.frac_bits)

    @property
    def exp_shift(self):
        return self.frac_shift + self.frac_bits

    @property
    def exp_mask(self):
        return bit_mask(self.exp_bits)

    @property
    def exp_bias(self):
        return (1 << (self.exp_bits - 1)) - 1

    @property
    def sign_shift(self):
        return self.exp_shift + self.exp_bits

    @property
    def sign_mask(self):
        return 1

    @property
    def int_bit(self):
        '''The implicit leading bit of a normal significand.'''
        return 1 << self.frac_bits

    def fields(self, raw):
        '''Split an encoding into its fields and return a FieldTuple.  Bits above the format
        width are ignored.'''
        if not isinstance(raw, int):
            raise TypeError('raw encoding must be an integer')
        if not 0 <= raw < 1 << STORAGE_WIDTH:
            raise ValueError(f'raw encoding {raw:#x} does not fit in {STORAGE_WIDTH} bits')
        fraction = (raw >> self.frac_shift) & self.frac_mask
        biased_exponent = (raw >> self.exp_shift) & self.exp_mask
        sign = bool((raw >> self.sign_shift) & self.sign_mask)
        return FieldTuple(sign, biased_exponent, fraction)

    def decode(self, raw):
        '''Decode an integer encoding and return an ArbFloat.'''
        return decode(self, raw)

    def decode_bytes(self, data, endianness=None):
        '''Decode a bytes encoding and return an ArbFloat.'''
        return decode_bytes(self, data, endianness)


class ArbFloat(namedtuple('ArbFloat', 'kind significand exponent')):
    '''A decoded floating point value.

    Regular numbers (normal and subnormal alike) have the value

            significand * 2^exponent

    where significand is a signed integer of arbitrary size.  Construction normalizes
    regular numbers so that a non-zero significand is odd; trailing zero bits are moved
    into the exponent.

    Zeroes, infinities and NaNs have no exponent.  Their significand is +1 or -1 and
    records only the sign, which is how the sign of a zero is kept.
    '''

    def __new__(cls, kind, significand, exponent=None):
        kind = FloatKind(kind)
        if not isinstance(significand, int):
            raise TypeError('significand must be an integer')
        if kind == FloatKind.REGULAR:
            if not isinstance(exponent, int):
                raise TypeError('a regular value requires an integer exponent')
            if significand:
                adjustment = trailing_zeros(significand)
                significand >>= adjustment
                exponent += adjustment
        else:
            if exponent is not None:
                raise ValueError(f'{kind.name} values have no exponent')
            if significand not in (-1, 1):
                raise ValueError(f'{kind.name} significand must be +1 or -1, '
                                 f'not {significand:,d}')
        return super().__new__(cls, kind, significand, exponent)

    @property
    def sign(self):
        '''True if the sign bit is set.'''
        return self.significand < 0

    def is_negative(self):
        '''Return True if the sign bit is set.'''
        return self.sign

    def is_regular(self):
        return self.kind == FloatKind.REGULAR

    def is_zero(self):
        '''Return True if the value is zero regardless of sign.'''
        return self.kind == FloatKind.ZERO

    def is_infinite(self):
        return self.kind == FloatKind.INFINITY

    def is_nan(self):
        return self.kind == FloatKind.NAN

    def is_finite(self):
        '''Return True for regular numbers and zeroes.'''
        return self.kind in (FloatKind.REGULAR, FloatKind.ZERO)

    def number_class(self):
        '''Return a string describing the class of the number.'''
        if self.kind == FloatKind.NAN:
            return 'NaN'
        return ('-' if self.sign else '+') + self.kind.name.capitalize()

    def as_integer_ratio(self):
        '''Return a pair (n, d) of integers that represent the value as a fraction in lowest
        terms and with a positive denominator.'''
        if self.kind == FloatKind.NAN:
            raise ValueError('cannot convert a NaN to an integer ratio')
        if self.kind == FloatKind.INFINITY:
            raise OverflowError('cannot convert an infinity to an integer ratio')
        if self.kind == FloatKind.ZERO or not self.significand:
            return (0, 1)
        # The significand is odd so this is in lowest terms
        if self.exponent >= 0:
            return self.significand << self.exponent, 1
        return self.significand, 1 << -self.exponent

    def as_fraction(self):
        '''Return the value as a Fraction.'''
        return Fraction(*self.as_integer_ratio())

    def __repr__(self):
        if self.kind == FloatKind.REGULAR:
            return (f'ArbFloat({self.kind.name}, exponent={self.exponent}, '
                    f'significand={self.significand})')
        return f'ArbFloat({self.kind.name}, significand={self.significand})'

    def __str__(self):
        sign = '-' if self.sign else ''
        if self.kind == FloatKind.REGULAR:
            return f'{self.significand}*2^{self.exponent}'
        if self.kind == FloatKind.ZERO:
            return sign + '0'
        if self.kind == FloatKind.INFINITY:
            return sign + 'Infinity'
        return sign + 'NaN'


def decode(fmt, raw):
    '''Decode the integer encoding raw of format fmt and return an ArbFloat.

    Every encoding decodes to exactly one value; bits above the format width are
    ignored.
    '''
    sign, biased_exponent, fraction = fmt.fields(raw)
    logger.debug('%r: raw=%#x sign=%d biased_exponent=%d fraction=%#x',
                 fmt, raw, sign, biased_exponent, fraction)

    # Adding precision - 1 to the bias lets the fraction field be read as an integer
    # rather than a fixed-point number in [1, 2).
    exponent = biased_exponent - (fmt.exp_bias + fmt.precision - 1)
    significand = -1 if sign else 1

    if biased_exponent == fmt.exp_mask:
        if fraction:
            return ArbFloat(FloatKind.NAN, significand)
        return ArbFloat(FloatKind.INFINITY, significand)

    if biased_exponent == 0:
        if not fraction:
            return ArbFloat(FloatKind.ZERO, significand)
        # Subnormal: no integer bit, and the exponent is that of the smallest normal
        return ArbFloat(FloatKind.REGULAR, significand * fraction, exponent + 1)

    return ArbFloat(FloatKind.REGULAR, significand * (fraction | fmt.int_bit), exponent)


def decode_bytes(fmt, data, endianness=None):
    '''Decode a bytes encoding of format fmt and return an ArbFloat.

    Endianness can be 'big' or 'little'.  If None, host-native endianness is used.'''
    if fmt.width % 8:
        raise InvalidFormat(f'a {fmt.width}-bit format has no byte encoding')
    size = fmt.width // 8
    if len(data) != size:
        raise ValueError(f'expected {size} bytes to decode; got {len(data)}')
    return decode(fmt, int.from_bytes(data, endianness or host_endianness))


def decode_float(value):
    '''Decode the binary64 encoding of a Python float.'''
    if not isinstance(value, float):
        raise TypeError('decode_float requires a float')
    return decode_bytes(BINARY64, pack_double(value))


#
# Predefined formats
#

host_endianness = 'little' if pack_double(-0.0)[0] == 0 else 'big'

BINARY16 = FormatDesc(10, 5)
BINARY32 = FormatDesc(23, 8)
BINARY64 = FormatDesc(52, 11)

# A toy format: one fraction bit, one exponent bit and a sign bit.  Its only finite
# values are zeroes and subnormals.
BINARY3 = FormatDesc(1, 1)

_IEEE_formats = {16: BINARY16, 32: BINARY32, 64: BINARY64}
