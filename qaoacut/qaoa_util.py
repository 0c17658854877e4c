import numpy as np
import os
from numba import njit


dtype = np.float64
complex_dtype = np.complex128

dtype_bits = int(os.getenv('QAOACUT_FPPOW', '6'))
if dtype_bits <= 4:
    print("[WARN]: QAOACUT_FPPOW <= 4 requested, but half-precision complex amplitudes are not supported. Using QAOACUT_FPPOW=5.")
    dtype_bits = 5
if dtype_bits == 5:
    dtype = np.float32
    complex_dtype = np.complex64

thread_count = int(os.getenv('QAOACUT_THREAD_COUNT', str(os.cpu_count() or 1)))
max_histogram_bins = int(os.getenv('QAOACUT_MAX_HISTOGRAM_BINS', str(1 << 24)))

MAX_QUBITS = 62


def check_width(width):
    if width < 1 or width > MAX_QUBITS:
        raise ValueError(f"Bit width must be in [1, {MAX_QUBITS}], got {width}!")


# The 0-component of the bit vector is the least significant bit.
@njit
def decode_bits(k, z):
    for pos in range(len(z)):
        z[pos] = k & 1
        k >>= 1


@njit
def convert_to_binary(k, z):
    if k < 0 or (k >> len(z)) != 0:
        raise ValueError("Decimal number is too large for the bit vector width!")
    decode_bits(k, z)


@njit
def convert_to_decimal(z):
    k = 0
    for pos in range(len(z) - 1, -1, -1):
        k = (k << 1) + z[pos]

    return k


def as_integer(value, name):
    try:
        integer = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"{name} must be an integer, got {value!r}!")
    if integer != value:
        raise ValueError(f"{name} must be an integer, got {value!r}!")

    return integer


def to_bits(k, width):
    check_width(width)
    k = as_integer(k, "Decimal number")
    if k < 0 or k >= (1 << width):
        raise ValueError(f"Too large decimal number: decimal = {k}, but binary has {width} bits.")
    z = np.empty(width, dtype=np.int64)
    convert_to_binary(k, z)

    return z


def from_bits(bits):
    z = np.asarray(bits, dtype=np.int64)
    if z.ndim != 1 or len(z) == 0:
        raise ValueError("Bit vector must be a non-empty 1-D sequence!")
    check_width(len(z))
    if np.any((z != 0) & (z != 1)):
        raise ValueError("Bit vector entries must be 0 or 1!")

    return int(convert_to_decimal(z))


def int_to_bitstring(integer, length):
    return (bin(integer)[2:].zfill(length))[::-1]


def split_indices(n, k):
    """
    Split n items across k workers into contiguous (start, end) pairs.

    The first (n % k) workers receive one extra item each.
    """
    chunk = n // k
    extra = n % k
    slices = []
    start = 0
    for i in range(k):
        end = start + chunk + (1 if i < extra else 0)
        slices.append((start, end))
        start = end

    return slices


def check_same_layout(psi, diag):
    if psi.local_size != diag.local_size:
        raise ValueError(f"State and cost vectors have different local sizes! ({psi.local_size} != {diag.local_size})")
    if psi.global_size != diag.global_size:
        raise ValueError(f"State and cost vectors have different global sizes! ({psi.global_size} != {diag.global_size})")
    if np.iscomplexobj(diag.local):
        raise ValueError("Cost vector must be real-valued!")
