import multiprocessing as mp
import os
import time
from collections import defaultdict
from multiprocessing import shared_memory, util

import numpy as np

from Partitioners import DEFAULT_CHUNK_SIZE, DEFAULT_SCHEDULE, SCHEDULES, partition_nodes

# Forward-algorithm triangle counting over the A+ CSR.
# One logical worker per node id; a triangle u < v < w (by rank) is only seen on u's edge to v.


# Intersect two ascending rows using the merge-based approach
def merge_intersect_count(arr1, arr2):
    count = 0
    i = j = 0
    while i < len(arr1) and j < len(arr2):
        if arr1[i] == arr2[j]:
            count += 1
            i += 1
            j += 1
        elif arr1[i] < arr2[j]:
            i += 1
        else:
            j += 1
    return count


def count_node(u, indptr, indices, n_slots):
    """Kernel body for node u: sum of |A+(u) & A+(v)| over v in A+(u). Ids >= n_slots are no-ops."""
    if u >= n_slots:
        return 0
    u_start, u_end = int(indptr[u]), int(indptr[u + 1])
    if u_end - u_start < 2:
        return 0
    neighbors_u = indices[u_start:u_end].tolist()
    count = 0
    for v in neighbors_u:
        v_start, v_end = int(indptr[v]), int(indptr[v + 1])
        if v_start == v_end:
            continue
        count += merge_intersect_count(neighbors_u, indices[v_start:v_end].tolist())
    return count


def count_nodes(nodes, indptr, indices, n_slots):
    local_count = 0
    for u in nodes:
        local_count += count_node(u, indptr, indices, n_slots)
    return local_count


def serial_triangle_count(csr):
    start = time.time()
    total = count_nodes(range(csr.n_slots), csr.indptr, csr.indices, csr.n_slots)
    print(f"[TIME] Serial counting: {time.time() - start:.4f} sec", flush=True)
    return total


# Per-process view of the shared CSR, set up once by the pool initializer
_worker = {}


def _attach_worker(shm_name_indptr, shm_name_indices, n_slots, n_edges, result):
    shm_indptr = shared_memory.SharedMemory(name=shm_name_indptr)
    shm_indices = shared_memory.SharedMemory(name=shm_name_indices)
    _worker["shm"] = (shm_indptr, shm_indices)
    _worker["indptr"] = np.ndarray((n_slots + 1,), dtype=np.uint32, buffer=shm_indptr.buf)
    _worker["indices"] = np.ndarray((n_edges,), dtype=np.uint32, buffer=shm_indices.buf)
    _worker["n_slots"] = n_slots
    _worker["result"] = result
    # Pool workers run registered finalizers when they exit after close()/join()
    util.Finalize(None, _detach_worker, exitpriority=10)


def _detach_worker():
    # Array views must be released before close()
    _worker.pop("indptr", None)
    _worker.pop("indices", None)
    for shm in _worker.pop("shm", ()):
        shm.close()


def _count_task(nodes):
    local_count = count_nodes(nodes, _worker["indptr"], _worker["indices"], _worker["n_slots"])
    if local_count:
        result = _worker["result"]
        with result.get_lock():
            result.value += local_count
    return os.getpid(), local_count


def _share_array(arr, label):
    try:
        shm = shared_memory.SharedMemory(create=True, size=max(arr.nbytes, 1))
    except OSError as exc:
        raise RuntimeError(f"Shared memory setup: cannot create {label} block ({arr.nbytes} bytes)") from exc
    np.ndarray(arr.shape, dtype=arr.dtype, buffer=shm.buf)[:] = arr[:]
    return shm


def _release(blocks):
    for shm in blocks:
        shm.close()
        shm.unlink()


def parallel_triangle_count(csr, num_workers=None, schedule=DEFAULT_SCHEDULE, chunk_size=DEFAULT_CHUNK_SIZE):
    """Counts triangles of a ForwardCSR with a process pool over shared memory.

    Workers add their partial sums to one shared counter; the counter is read
    only after every task has completed.
    """
    if num_workers is None:
        num_workers = mp.cpu_count()
    if num_workers < 1:
        raise ValueError(f"num_workers must be >= 1, got {num_workers}")

    if schedule not in SCHEDULES:
        raise ValueError(f"Schedule must be one of {SCHEDULES}, got {schedule!r}")
    if num_workers == 1:
        return serial_triangle_count(csr)

    tasks = partition_nodes(schedule, csr.indptr, num_workers, chunk_size)

    total_start = time.time()
    blocks = []
    try:
        # Set up shared memory for CSR arrays
        shm_start = time.time()
        blocks.append(_share_array(csr.indptr, "offsets"))
        blocks.append(_share_array(csr.indices, "adjacency"))
        print(f"[TIME] Shared memory setup: {time.time() - shm_start:.4f} sec", flush=True)

        result = mp.Value("Q", 0)
        per_worker = defaultdict(lambda: [0, 0])  # pid -> [tasks, triangles]

        count_start = time.time()
        try:
            pool = mp.Pool(processes=num_workers, initializer=_attach_worker,
                           initargs=(blocks[0].name, blocks[1].name, csr.n_slots, len(csr.indices), result))
        except OSError as exc:
            raise RuntimeError(f"Process pool: cannot start {num_workers} workers") from exc
        with pool:
            for pid, local_count in pool.imap_unordered(_count_task, tasks):
                per_worker[pid][0] += 1
                per_worker[pid][1] += local_count
            pool.close()
            pool.join()
        print(f"[TIME] Counting phase ({len(tasks)} tasks, {schedule}): {time.time() - count_start:.4f} sec", flush=True)

        for pid, (n_tasks, count) in sorted(per_worker.items()):
            print(f"[Worker {pid}] FINISHED {n_tasks} tasks. Found {count} triangles.", flush=True)

        total_triangles = result.value
    finally:
        _release(blocks)

    print(f"[TIME] Total parallel count: {time.time() - total_start:.4f} sec", flush=True)
    return total_triangles
