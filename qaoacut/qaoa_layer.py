import numpy as np
from numba import njit, prange

from .qaoa_util import as_integer, check_same_layout


# exp(-i gamma H_problem)
@njit(parallel=True)
def phase_kernel(psi, diag, gamma):
    for i in prange(len(psi)):
        angle = gamma * diag[i]
        psi[i] *= complex(np.cos(angle), -np.sin(angle))


@njit
def phase_table(gamma, max_value):
    table = np.empty(max_value + 1, dtype=np.complex128)
    for c in range(max_value + 1):
        angle = gamma * c
        table[c] = complex(np.cos(angle), -np.sin(angle))

    return table


@njit(parallel=True)
def phase_table_kernel(psi, costs, table):
    for i in prange(len(psi)):
        psi[i] *= table[costs[i]]


def apply_phase_layer(psi, diag, gamma, max_value=None):
    """
    Rotate each amplitude by exp(-i * gamma * cost), in place.

    With max_value, the phases of the integer costs 0..max_value are computed
    once and looked up instead of evaluated per amplitude.
    """
    check_same_layout(psi, diag)
    if not np.iscomplexobj(psi.local):
        raise ValueError("State vector must be complex-valued!")

    if max_value is None:
        phase_kernel(psi.local, diag.local, float(gamma))
        return

    max_value = as_integer(max_value, "max_value")
    if max_value < 0:
        raise ValueError(f"max_value must be non-negative, got {max_value}!")
    # Costs are checked before any amplitude is rotated.
    costs = diag.local.astype(np.int64)
    if np.any((costs < 0) | (costs > max_value)):
        raise ValueError(f"Cost vector has values outside [0, {max_value}]!")
    phase_table_kernel(psi.local, costs, phase_table(float(gamma), max_value))


def apply_qaoa_phases(psi, diag, gammas, mixer=None, betas=None, max_value=None):
    """
    Apply one cost layer per gamma. When a mixer is given, mixer(psi, beta)
    is called after each cost layer with the matching beta.
    """
    if mixer is not None and (betas is None or len(betas) != len(gammas)):
        raise ValueError("A mixer requires one beta per gamma!")

    for layer, gamma in enumerate(gammas):
        apply_phase_layer(psi, diag, gamma, max_value)
        if mixer is not None:
            mixer(psi, betas[layer])
