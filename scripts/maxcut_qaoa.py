# Single-layer QAOA grid search for MAXCUT
# Run serially, or across ranks with: mpirun -n 4 python maxcut_qaoa.py 12

from qaoacut import ShardedVector, apply_qaoa_phases, build_cost_operator, expectation, histogram, mpi_context, optimal_cut_probability, serial_context
from qaoacut.process_group import IS_MPI_AVAILABLE
import networkx as nx
import numpy as np
import sys
import time


# Transverse-field mixer exp(-i beta sum_j X_j), on a full (unsharded) state vector
def rx_mixer(psi, beta):
    n = psi.n_qubits
    c, s = np.cos(beta), -1j * np.sin(beta)
    state = psi.local.reshape([2] * n)
    for q in range(n):
        state = np.moveaxis(state, q, 0)
        state = np.stack((c * state[0] + s * state[1], s * state[0] + c * state[1]))
        state = np.moveaxis(state, 0, q)
    psi.local[:] = state.reshape(-1)


if __name__ == "__main__":
    n_nodes = int(sys.argv[1]) if len(sys.argv) > 1 else 10
    degree = int(sys.argv[2]) if len(sys.argv) > 2 else 3
    seed = int(sys.argv[3]) if len(sys.argv) > 3 else None

    context = mpi_context() if IS_MPI_AVAILABLE else serial_context()
    is_root = context.rank == 0

    G = nx.random_regular_graph(degree, n_nodes, seed=seed)

    start = time.perf_counter()
    diag = ShardedVector.cost_vector(n_nodes, context)
    max_cut = build_cost_operator(G, diag)
    seconds = time.perf_counter() - start
    if is_root:
        print(f"{seconds} seconds to build the cost operator")
        print(f"Node count: {n_nodes}, edge count: {G.number_of_edges()}")
        print(f"Maximum cut: {max_cut}")

    if context.size > 1:
        # The mixer needs the whole state vector. Phase layers alone leave every
        # cost statistic unchanged, so there is nothing to sweep.
        if is_root:
            print(f"[WARN]: {context.size} processes: the mixer needs a single process, so the (gamma, beta) sweep is skipped.")
        psi = ShardedVector.uniform_superposition(n_nodes, context)
        energy = expectation(psi, diag)
        hist = histogram(psi, diag, max_cut)
        if is_root:
            print(f"Uniform-state expected cut: {energy} (ratio {energy / max_cut})")
            print(f"Probability of a maximum cut: {optimal_cut_probability(hist, max_cut)}")
            print(f"Cut histogram: {hist}")
        sys.exit(0)

    betas = np.linspace(0.0, np.pi / 2, 9)
    gammas = np.linspace(0.0, np.pi, 17)

    best = (-1.0, None, None)
    for gamma in gammas:
        for beta in betas:
            psi = ShardedVector.uniform_superposition(n_nodes, context)
            apply_qaoa_phases(psi, diag, [gamma], mixer=rx_mixer, betas=[beta], max_value=max_cut)
            energy = expectation(psi, diag)
            if energy > best[0]:
                best = (energy, gamma, beta)

    energy, gamma, beta = best
    psi = ShardedVector.uniform_superposition(n_nodes, context)
    apply_qaoa_phases(psi, diag, [gamma], mixer=rx_mixer, betas=[beta], max_value=max_cut)
    hist = histogram(psi, diag, max_cut)

    print(f"Best (gamma, beta): ({gamma}, {beta})")
    print(f"Expected cut: {energy} (ratio {energy / max_cut})")
    print(f"Probability of a maximum cut: {optimal_cut_probability(hist, max_cut)}")
    print(f"Cut histogram: {hist}")
