import numpy as np
from numba import njit, prange

from .qaoa_util import as_integer, check_same_layout, max_histogram_bins, split_indices, thread_count as default_thread_count


@njit(parallel=True)
def expectation_kernel(psi, diag):
    local_expectation = 0.0
    for i in prange(len(psi)):
        a = psi[i]
        local_expectation += diag[i] * (a.real * a.real + a.imag * a.imag)

    return local_expectation


def expectation(psi, diag):
    """<psi|H_C|psi> over the whole distributed state (collective)."""
    check_same_layout(psi, diag)
    local_expectation = float(expectation_kernel(psi.local, diag.local))

    return float(psi.context.allreduce_sum(local_expectation))


# Each worker t fills its own row of private_hist from the index range
# bounds[t]; rows are merged in worker order.
@njit(parallel=True)
def histogram_kernel(psi, diag, max_value, bounds):
    n_workers = len(bounds)
    private_hist = np.zeros((n_workers, max_value + 1), dtype=np.float64)
    out_of_range = np.zeros(n_workers, dtype=np.int64)
    for t in prange(n_workers):
        for i in range(bounds[t, 0], bounds[t, 1]):
            cut = int(diag[i])
            if cut < 0 or cut > max_value:
                out_of_range[t] += 1
                continue
            a = psi[i]
            private_hist[t, cut] += a.real * a.real + a.imag * a.imag

    local_hist = np.zeros(max_value + 1, dtype=np.float64)
    for t in range(n_workers):
        local_hist += private_hist[t]

    return local_hist, out_of_range.sum()


def histogram(psi, diag, max_value, thread_count=None):
    """
    Probability mass of the distributed state binned by integer cost.

    Returns an array of length max_value + 1 whose entry v is the total
    |amplitude|**2 of basis states with cost exactly v. Collective: every
    rank receives the same array, and every rank raises if any shard holds
    a cost outside [0, max_value].
    """
    check_same_layout(psi, diag)
    max_value = as_integer(max_value, "max_value")
    if max_value <= 0:
        raise ValueError(f"max_value must be positive, got {max_value}!")
    if (max_value + 1) > max_histogram_bins:
        raise ValueError(f"{max_value + 1} histogram bins exceed QAOACUT_MAX_HISTOGRAM_BINS={max_histogram_bins}!")

    if thread_count is None:
        thread_count = default_thread_count
    # Private rows total thread_count * (max_value + 1) bins, within the same bound.
    thread_count = max(1, min(int(thread_count), psi.local_size, max_histogram_bins // (max_value + 1)))
    bounds = np.array(split_indices(psi.local_size, thread_count), dtype=np.int64)

    local_hist, out_of_range = histogram_kernel(psi.local, diag.local, max_value, bounds)

    # The violation count travels with the bins so all ranks agree on failure.
    payload = np.append(local_hist, float(out_of_range))
    payload = psi.context.allreduce_sum(payload)
    if payload[-1] > 0:
        raise ValueError(f"{int(payload[-1])} cost values lie outside [0, {max_value}]!")

    return payload[:-1].copy()


def optimal_cut_probability(hist, max_cut):
    """Probability of measuring a maximum cut, from a cost histogram."""
    hist = np.asarray(hist)
    total = hist.sum()
    if total <= 0.0:
        raise ValueError("Histogram holds no probability mass!")

    return float(hist[max_cut] / total)


def approximation_ratio(expected_cut, max_cut):
    if max_cut <= 0:
        raise ValueError(f"Maximum cut must be positive, got {max_cut}!")

    return expected_cut / max_cut
