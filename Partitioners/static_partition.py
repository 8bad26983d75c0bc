import time

"""
Static Partitioning.
The node id range is cut into num_workers contiguous blocks of (almost) equal size.
Cheapest schedule, but blocks with hub-heavy id ranges finish last.
"""


def partition_static(indptr, num_workers):
    start = time.time()
    n_slots = len(indptr) - 1
    bounds = [i * n_slots // num_workers for i in range(num_workers + 1)]
    tasks = [range(bounds[i], bounds[i + 1]) for i in range(num_workers) if bounds[i] < bounds[i + 1]]
    print(f"Static partitioning took: {time.time() - start:.4f} seconds")
    return tasks
