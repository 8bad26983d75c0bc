import heapq
import time

import numpy as np

"""
Weight-Based Partitioning (LPT).
Each node's weight is the length of its forward (A+) row. Nodes are taken heaviest first and
assigned to the currently least loaded bucket, tracked with a min-heap.
"""


def partition_weighted(indptr, num_workers):
    start = time.time()
    weights = np.diff(indptr.astype(np.int64))
    order = np.argsort(-weights, kind="stable")  # High-work nodes first

    buckets = [[] for _ in range(num_workers)]
    heap = [(0, i) for i in range(num_workers)]  # (current_work_sum, bucket_id)
    heapq.heapify(heap)

    for node in order.tolist():
        curr_sum, bucket_id = heapq.heappop(heap)
        buckets[bucket_id].append(node)
        heapq.heappush(heap, (curr_sum + int(weights[node]), bucket_id))

    tasks = [bucket for bucket in buckets if bucket]
    print(f"Weighted partitioning took: {time.time() - start:.4f} seconds")
    return tasks
