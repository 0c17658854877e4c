from .qaoa_util import from_bits, int_to_bitstring, to_bits
from .process_group import ProcessContext, mpi_context, run_local_group, serial_context
from .sharded_vector import ShardedVector
from .maxcut_cost import build_cost_operator, cut_value, get_cut, to_adjacency
from .qaoa_layer import apply_phase_layer, apply_qaoa_phases
from .cost_statistics import approximation_ratio, expectation, histogram, optimal_cut_probability
