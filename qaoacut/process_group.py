"""
Process groups: the rank, size and blocking collective reductions that the
distributed cost-operator routines combine their per-shard results with.

Three ways to obtain a ProcessContext:

  serial_context()              - one process; reductions are the identity
  mpi_context(comm)             - an mpi4py communicator (optional dependency)
  run_local_group(size, target) - `size` spawned processes on this host,
                                  each calling target(context, *args)

Every process in a group must call the reductions the same number of times,
in the same order. A mismatch blocks forever (MPI) or until the local
group's barrier is aborted by a failing rank.
"""

import multiprocessing
import pickle
import queue
import traceback

import numpy as np

IS_MPI_AVAILABLE = True
try:
    from mpi4py import MPI
except ImportError:
    IS_MPI_AVAILABLE = False


MAX = "max"
SUM = "sum"

# Seconds between checks for local ranks that died without reporting.
POLL_INTERVAL = 0.1


def combine(values, op):
    """Combine per-rank contributions in rank order."""
    if op == MAX:
        result = values[0]
        for v in values[1:]:
            result = np.maximum(result, v) if isinstance(result, np.ndarray) else max(result, v)
        return result
    if op == SUM:
        result = values[0].copy() if isinstance(values[0], np.ndarray) else values[0]
        for v in values[1:]:
            result = result + v
        return result
    raise ValueError(f"Unknown reduction operation: {op}")


class ProcessContext:
    def __init__(self, rank=0, size=1, group=None):
        if size < 1 or rank < 0 or rank >= size:
            raise ValueError(f"Invalid process rank {rank} for group size {size}!")
        if size > 1 and group is None:
            raise ValueError("A process group is required when size > 1!")
        self.rank = rank
        self.size = size
        self.group = group

    def allreduce_max(self, value):
        if self.size == 1:
            return value
        return self.group.allreduce(value, MAX)

    def allreduce_sum(self, value):
        if self.size == 1:
            return value
        return self.group.allreduce(value, SUM)

    def __repr__(self):
        return f"ProcessContext(rank={self.rank}, size={self.size})"


def serial_context():
    return ProcessContext(0, 1, None)


class MPIGroup:
    def __init__(self, comm):
        self.comm = comm

    def allreduce(self, value, op):
        mpi_op = MPI.MAX if op == MAX else MPI.SUM
        if isinstance(value, np.ndarray):
            send = np.ascontiguousarray(value)
            recv = np.empty_like(send)
            self.comm.Allreduce(send, recv, op=mpi_op)
            return recv
        return self.comm.allreduce(value, op=mpi_op)


def mpi_context(comm=None):
    if not IS_MPI_AVAILABLE:
        raise ImportError("mpi4py is not installed. (Install qaoacut[mpi] to run across MPI ranks.)")
    if comm is None:
        comm = MPI.COMM_WORLD

    return ProcessContext(comm.Get_rank(), comm.Get_size(), MPIGroup(comm))


class LocalGroup:
    """
    Collective reductions among processes spawned by run_local_group().

    Each rank publishes its contribution in a shared slot, waits for all
    ranks, combines every slot in rank order, then waits again so the slots
    can be reused by the next reduction.
    """

    def __init__(self, rank, barrier, slots):
        self.rank = rank
        self.barrier = barrier
        self.slots = slots

    def allreduce(self, value, op):
        self.slots[self.rank] = value
        self.barrier.wait()
        values = list(self.slots)
        self.barrier.wait()

        return combine(values, op)


def _local_rank_main(target, rank, size, barrier, slots, results, args):
    context = ProcessContext(rank, size, LocalGroup(rank, barrier, slots))
    try:
        # Pickled here so an unpicklable result is reported like any other failure.
        payload = pickle.dumps(target(context, *args))
    except BaseException:
        # Release the other ranks from any pending reduction.
        barrier.abort()
        results.put((rank, False, traceback.format_exc()))
        return
    results.put((rank, True, payload))


def _drain(results, outcomes):
    while True:
        try:
            rank, ok, payload = results.get_nowait()
        except queue.Empty:
            return
        outcomes[rank] = (ok, payload)


def run_local_group(size, target, *args):
    """
    Run target(context, *args) on `size` local processes and return the
    per-rank results, ordered by rank.

    `target` must be importable by the spawned processes (defined at module
    level) and its return value must be picklable. A failure on any rank
    raises RuntimeError carrying that rank's traceback; a rank that dies
    without reporting raises RuntimeError naming it.
    """
    if size < 1:
        raise ValueError(f"Process group size must be positive, got {size}!")

    mp = multiprocessing.get_context("spawn")
    outcomes = {}
    with mp.Manager() as manager:
        slots = manager.list([None] * size)
        barrier = mp.Barrier(size)
        results = mp.Queue()
        procs = [
            mp.Process(target=_local_rank_main, args=(target, rank, size, barrier, slots, results, args))
            for rank in range(size)
        ]
        try:
            for p in procs:
                p.start()
            while len(outcomes) < size:
                try:
                    rank, ok, payload = results.get(timeout=POLL_INTERVAL)
                except queue.Empty:
                    # A rank flushes its result before exiting, so drain once more before blaming it.
                    _drain(results, outcomes)
                    for rank, p in enumerate(procs):
                        if rank not in outcomes and p.exitcode is not None:
                            raise RuntimeError(f"Rank {rank} of {size} exited with code {p.exitcode} without reporting a result!")
                    continue
                outcomes[rank] = (ok, payload)
            for p in procs:
                p.join()
        finally:
            for p in procs:
                if p.is_alive():
                    p.terminate()
                    p.join()

    failures = [(rank, outcomes[rank][1]) for rank in range(size) if not outcomes[rank][0]]
    if failures:
        # Ranks released by barrier.abort() report BrokenBarrierError; show the originating rank.
        root = next((f for f in failures if "BrokenBarrierError" not in f[1]), failures[0])
        raise RuntimeError(f"Rank {root[0]} of {size} failed:\n{root[1]}")

    return [pickle.loads(outcomes[rank][1]) for rank in range(size)]
