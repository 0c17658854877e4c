import networkx as nx
import numpy as np
import pytest

from qaoacut import (
    ShardedVector, apply_phase_layer, approximation_ratio, build_cost_operator, cost_statistics,
    expectation, histogram, optimal_cut_probability,
)


def random_state(n, seed):
    rng = np.random.default_rng(seed)
    amps = rng.normal(size=1 << n) + 1j * rng.normal(size=1 << n)
    amps /= np.linalg.norm(amps)
    return ShardedVector.from_global(amps)


def graph_costs(G, dtype=np.float64):
    diag = ShardedVector.zeros(G.number_of_nodes(), dtype=dtype)
    max_cut = build_cost_operator(G, diag)
    return diag, max_cut


def test_delta_state_expectation_exact():
    diag, _ = graph_costs(nx.petersen_graph())
    for j in (0, 1, 341, 682, 1023):
        psi = ShardedVector.basis_state(10, j)
        assert expectation(psi, diag) == diag[j]


def test_delta_state_expectation_exact_single_precision():
    diag, _ = graph_costs(nx.petersen_graph(), dtype=np.float32)
    psi = ShardedVector.basis_state(10, 341, dtype=np.complex64)
    assert expectation(psi, diag) == float(diag[341])


def test_uniform_expectation_is_half_the_edges():
    G = nx.erdos_renyi_graph(9, 0.5, seed=11)
    diag, _ = graph_costs(G)
    psi = ShardedVector.uniform_superposition(9)
    assert abs(expectation(psi, diag) - G.number_of_edges() / 2) < 1e-10


def test_expectation_matches_numpy():
    diag, _ = graph_costs(nx.petersen_graph())
    psi = random_state(10, seed=12)
    expected = np.sum(diag.local * np.abs(psi.local) ** 2)
    assert abs(expectation(psi, diag) - expected) < 1e-10


def test_expectation_invariant_under_phase_layer():
    diag, _ = graph_costs(nx.petersen_graph())
    psi = random_state(10, seed=13)
    before = expectation(psi, diag)
    apply_phase_layer(psi, diag, 0.9)
    assert abs(expectation(psi, diag) - before) < 1e-10


def test_histogram_four_cycle_uniform():
    diag, max_cut = graph_costs(nx.cycle_graph(4))
    psi = ShardedVector.uniform_superposition(4)
    hist = histogram(psi, diag, max_cut)
    assert len(hist) == 5
    assert np.allclose(hist, [0.125, 0.0, 0.75, 0.0, 0.125])


def test_histogram_mass_conservation():
    diag, max_cut = graph_costs(nx.petersen_graph())
    psi = random_state(10, seed=14)
    hist = histogram(psi, diag, max_cut)
    assert abs(hist.sum() - np.sum(np.abs(psi.local) ** 2)) < 1e-10
    present = set(diag.local.astype(int))
    for v in range(max_cut + 1):
        if v not in present:
            assert hist[v] == 0.0


def test_histogram_unnormalized_mass():
    diag, max_cut = graph_costs(nx.path_graph(5))
    psi = ShardedVector.from_global(np.full(32, 2.0 + 0.0j))
    hist = histogram(psi, diag, max_cut)
    assert abs(hist.sum() - 128.0) < 1e-10


def test_histogram_independent_of_thread_count():
    diag, max_cut = graph_costs(nx.petersen_graph())
    psi = random_state(10, seed=15)
    reference = histogram(psi, diag, max_cut, thread_count=1)
    for thread_count in (2, 3, 7, 64, 5000):
        assert np.allclose(histogram(psi, diag, max_cut, thread_count=thread_count), reference, atol=1e-12)


def test_histogram_matches_bincount():
    diag, max_cut = graph_costs(nx.erdos_renyi_graph(10, 0.3, seed=16))
    psi = random_state(10, seed=17)
    expected = np.bincount(diag.local.astype(int), weights=np.abs(psi.local) ** 2, minlength=max_cut + 1)
    assert np.allclose(histogram(psi, diag, max_cut), expected, atol=1e-12)


def test_histogram_larger_max_value():
    diag, max_cut = graph_costs(nx.cycle_graph(4))
    psi = ShardedVector.uniform_superposition(4)
    hist = histogram(psi, diag, 10)
    assert len(hist) == 11
    assert not hist[max_cut + 1:].any()


def test_histogram_precondition_violations():
    diag, max_cut = graph_costs(nx.petersen_graph())
    psi = random_state(10, seed=18)
    with pytest.raises(ValueError):
        histogram(psi, diag, 0)
    with pytest.raises(ValueError):
        histogram(psi, diag, max_cut - 1)
    with pytest.raises(ValueError):
        histogram(psi, diag, 1 << 40)
    with pytest.raises(ValueError):
        histogram(random_state(9, seed=19), diag, max_cut)
    bad = ShardedVector.from_global(diag.local.copy())
    bad[3] = -1.0
    with pytest.raises(ValueError):
        histogram(psi, bad, max_cut)



def test_histogram_non_integral_max_value_raises():
    diag, max_cut = graph_costs(nx.cycle_graph(4))
    psi = ShardedVector.uniform_superposition(4)
    with pytest.raises(ValueError):
        histogram(psi, diag, 4.9)
    with pytest.raises(ValueError):
        histogram(psi, diag, float("nan"))
    assert np.array_equal(histogram(psi, diag, 4.0), histogram(psi, diag, 4))


def test_histogram_worker_rows_within_bin_bound(monkeypatch):
    diag, max_cut = graph_costs(nx.petersen_graph())
    psi = random_state(10, seed=20)
    reference = histogram(psi, diag, max_cut, thread_count=1)
    # Room for two private rows only.
    monkeypatch.setattr(cost_statistics, "max_histogram_bins", 2 * (max_cut + 1) + 1)
    seen = []
    kernel = cost_statistics.histogram_kernel

    def recording_kernel(psi_local, diag_local, max_value, bounds):
        seen.append(len(bounds))
        return kernel(psi_local, diag_local, max_value, bounds)

    monkeypatch.setattr(cost_statistics, "histogram_kernel", recording_kernel)
    assert np.allclose(histogram(psi, diag, max_cut, thread_count=64), reference, atol=1e-12)
    assert seen == [2]

def test_expectation_layout_mismatch_raises():
    diag, _ = graph_costs(nx.petersen_graph())
    with pytest.raises(ValueError):
        expectation(random_state(9, seed=20), diag)


def test_optimal_cut_probability_and_ratio():
    diag, max_cut = graph_costs(nx.cycle_graph(4))
    psi = ShardedVector.uniform_superposition(4)
    hist = histogram(psi, diag, max_cut)
    assert abs(optimal_cut_probability(hist, max_cut) - 0.125) < 1e-12
    assert abs(approximation_ratio(expectation(psi, diag), max_cut) - 0.5) < 1e-12
    with pytest.raises(ValueError):
        optimal_cut_probability(np.zeros(3), 2)
    with pytest.raises(ValueError):
        approximation_ratio(1.0, 0)
