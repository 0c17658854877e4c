import math
import numpy as np

from .process_group import serial_context
from .qaoa_util import check_width, complex_dtype, dtype as real_dtype


class ShardedVector:
    """
    The local shard of a vector indexed by the 2**n_qubits computational
    basis states and split evenly across the processes of a context.

    Rank r owns the global indices [r * local_size, (r + 1) * local_size).
    """

    def __init__(self, local, n_qubits, context=None):
        check_width(n_qubits)
        if context is None:
            context = serial_context()
        global_size = 1 << n_qubits
        if global_size % context.size:
            raise ValueError(f"{global_size} amplitudes cannot be split evenly across {context.size} processes!")
        local = np.asarray(local)
        if local.ndim != 1 or len(local) != global_size // context.size:
            raise ValueError(f"Local shard must have {global_size // context.size} entries, got shape {local.shape}!")
        self.local = local
        self.n_qubits = n_qubits
        self.context = context

    @property
    def local_size(self):
        return len(self.local)

    @property
    def global_size(self):
        return 1 << self.n_qubits

    @property
    def global_start(self):
        return self.context.rank * self.local_size

    @property
    def dtype(self):
        return self.local.dtype

    def __len__(self):
        return self.local_size

    def __getitem__(self, i):
        return self.local[i]

    def __setitem__(self, i, value):
        self.local[i] = value

    def global_indices(self):
        return np.arange(self.global_start, self.global_start + self.local_size, dtype=np.int64)

    def norm2(self):
        """Sum of |x|**2 over the whole distributed vector (collective)."""
        local = float(np.sum(self.local.real ** 2 + self.local.imag ** 2)) if np.iscomplexobj(self.local) else float(np.sum(self.local ** 2))

        return self.context.allreduce_sum(local)

    @classmethod
    def zeros(cls, n_qubits, context=None, dtype=None):
        if context is None:
            context = serial_context()
        check_width(n_qubits)
        local_size = (1 << n_qubits) // context.size

        return cls(np.zeros(local_size, dtype=complex_dtype if dtype is None else dtype), n_qubits, context)

    @classmethod
    def cost_vector(cls, n_qubits, context=None):
        """Zeroed real shard sized for build_cost_operator(), in the QAOACUT_FPPOW precision."""
        return cls.zeros(n_qubits, context, real_dtype)

    @classmethod
    def from_global(cls, values, context=None, dtype=None):
        """Take this rank's shard of a full-length vector."""
        if context is None:
            context = serial_context()
        values = np.asarray(values, dtype=dtype)
        n_qubits = int(len(values)).bit_length() - 1
        if len(values) < 2 or (1 << n_qubits) != len(values):
            raise ValueError(f"Global vector length must be a power of 2 (at least 2), got {len(values)}!")
        local_size = len(values) // context.size
        start = context.rank * local_size

        return cls(values[start:start + local_size].copy(), n_qubits, context)

    @classmethod
    def basis_state(cls, n_qubits, index, context=None, dtype=None):
        vec = cls.zeros(n_qubits, context, dtype)
        if index < 0 or index >= vec.global_size:
            raise ValueError(f"Basis state {index} is out of range for {n_qubits} qubits!")
        local_index = index - vec.global_start
        if 0 <= local_index < vec.local_size:
            vec.local[local_index] = 1.0

        return vec

    @classmethod
    def uniform_superposition(cls, n_qubits, context=None, dtype=None):
        """|+>^n, the usual initial state of a QAOA circuit."""
        vec = cls.zeros(n_qubits, context, dtype)
        vec.local.fill(1.0 / math.sqrt(vec.global_size))

        return vec

    def __repr__(self):
        return (
            f"ShardedVector(n_qubits={self.n_qubits}, "
            f"local_size={self.local_size}, "
            f"rank={self.context.rank}/{self.context.size}, "
            f"dtype={self.dtype})"
        )
