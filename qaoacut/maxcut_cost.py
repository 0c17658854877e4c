import math
import networkx as nx
import numpy as np
from numba import njit, prange
from scipy.sparse import issparse

from .qaoa_util import check_width, decode_bits, int_to_bitstring, to_bits


def to_adjacency(G):
    """
    Normalize a graph to a square int64 {0,1} adjacency matrix.

    G may be a networkx graph, a scipy.sparse matrix, a square 2-D array, or
    a flat row-major sequence of n*n entries. Returns (G_m, nodes).
    """
    nodes = None
    if isinstance(G, nx.Graph):
        nodes = list(G.nodes())
        G_m = nx.to_numpy_array(G, nodelist=nodes, weight=None, nonedge=0.0)
    elif issparse(G):
        G_m = G.toarray()
    else:
        G_m = np.asarray(G)

    if G_m.ndim == 1:
        n = math.isqrt(len(G_m))
        if n * n != len(G_m):
            raise ValueError(f"Flat adjacency matrix must have n*n entries, got {len(G_m)}!")
        G_m = G_m.reshape((n, n))
    elif G_m.ndim != 2 or G_m.shape[0] != G_m.shape[1]:
        raise ValueError(f"Adjacency matrix must be square, got shape {G_m.shape}!")

    n = G_m.shape[0]
    check_width(n)
    if nodes is None:
        nodes = list(range(n))

    if not np.all((G_m == 0) | (G_m == 1)):
        raise ValueError("Adjacency matrix entries must be 0 or 1!")
    G_m = G_m.astype(np.int64)
    if np.any(np.diagonal(G_m)):
        raise ValueError("Adjacency matrix must have a null diagonal (no self-loops)!")
    if not np.array_equal(G_m, G_m.T):
        raise ValueError("Adjacency matrix must be symmetric!")
    if G_m.sum() % 2:
        raise ValueError("Adjacency matrix must count each edge twice!")

    return G_m, nodes


# With x the {-1,+1} coloring of the vertices,
#   x^T.G_m.x = 2 * (uncut_edges - cut_edges)
# so
#   cut_edges = (n_edges - x^T.G_m.x / 2) / 2
# Returns -1 when either division is inexact.
@njit
def compute_cut(G_m, n_edges, k, z):
    n = len(z)
    decode_bits(k, z)
    for v in range(n):
        if z[v] == 0:
            z[v] = -1
    quad = 0
    for v in range(n):
        for u in range(n):
            quad += G_m[v, u] * z[v] * z[u]
    if quad % 2:
        return -1
    cut = n_edges - quad // 2
    if cut % 2:
        return -1

    return cut // 2


@njit(parallel=True)
def maxcut_cost_kernel(G_m, n_edges, glb_start, diag):
    n = len(G_m)
    local_size = len(diag)
    cuts = np.empty(local_size, dtype=np.int64)
    for i in prange(local_size):
        z = np.empty(n, dtype=np.int64)
        cut = compute_cut(G_m, n_edges, glb_start + np.int64(i), z)
        cuts[i] = cut
        # Inexact states keep a zero cost; the caller raises on them.
        diag[i] = cut if cut >= 0 else 0

    inexact = 0
    max_cut = 0
    for i in range(local_size):
        if cuts[i] < 0:
            inexact += 1
        elif cuts[i] > max_cut:
            max_cut = cuts[i]

    return max_cut, inexact


def build_cost_operator(G, diag):
    """
    Fill the diagonal Max-Cut cost vector and return the global maximum cut.

    diag holds one cut value per computational basis state; this rank fills
    its own shard. Collective: every rank of diag.context must call it.
    """
    G_m, _ = to_adjacency(G)
    n_qubits = len(G_m)
    if diag.n_qubits != n_qubits:
        raise ValueError(f"Cost vector has {diag.n_qubits} qubits, but the graph has {n_qubits} vertices!")
    if np.iscomplexobj(diag.local):
        raise ValueError("Cost vector must be real-valued!")

    n_edges = int(G_m.sum()) // 2
    if diag.dtype == np.float32 and n_edges > (1 << 24):
        print("[WARN]: build_cost_operator() cut values exceed float32 integer precision.")

    max_cut, inexact = maxcut_cost_kernel(G_m, n_edges, diag.global_start, diag.local)
    if inexact:
        raise ValueError(f"Inconsistent adjacency matrix: {inexact} basis states have a non-integer cut value!")

    return int(diag.context.allreduce_max(int(max_cut)))


def cut_value(G, k):
    """Cut size of the single coloring encoded by basis state k."""
    G_m, _ = to_adjacency(G)
    n = len(G_m)
    z = to_bits(k, n)
    cut = compute_cut(G_m, int(G_m.sum()) // 2, int(k), z)
    if cut < 0:
        raise ValueError("Inconsistent adjacency matrix: non-integer cut value!")

    return int(cut)


def get_cut(k, nodes):
    n = len(nodes)
    bits = to_bits(k, n)
    l, r = [], []
    for i in range(n):
        if bits[i]:
            r.append(nodes[i])
        else:
            l.append(nodes[i])

    return int_to_bitstring(int(k), n), l, r
