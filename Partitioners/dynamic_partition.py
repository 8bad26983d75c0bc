import time

"""
Dynamic (Workgroup) Partitioning.
Fixed-size blocks of chunk_size node ids handed out on demand, like an OpenMP dynamic schedule
or a GPU dispatch of ceil(N / chunk_size) workgroups. The last block is padded to the full
width; the counting kernel treats ids >= N as no-ops.
"""


def partition_dynamic(indptr, chunk_size):
    start = time.time()
    n_slots = len(indptr) - 1
    tasks = [range(first, first + chunk_size) for first in range(0, n_slots, chunk_size)]
    print(f"Dynamic partitioning took: {time.time() - start:.4f} seconds ({len(tasks)} chunks of {chunk_size})")
    return tasks
