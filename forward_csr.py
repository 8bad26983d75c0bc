import time
from collections import namedtuple

import numpy as np

from graph_ingest import NODE_ID_LIMIT, unpack_edges

# Forward (A+) representation: each undirected edge is stored once, under its lower-ranked endpoint
ForwardCSR = namedtuple("ForwardCSR", ["indptr", "indices", "degrees", "n_slots"])


# Degree of every node slot from the canonical edge set, O(E)
def compute_degrees(u, v, n_slots):
    return np.bincount(np.concatenate((u, v)), minlength=n_slots).astype(np.int64)


# rank(a) < rank(b): lower degree first, ties broken by the smaller node id
def rank_less(degrees, a, b):
    return degrees[a] < degrees[b] or (degrees[a] == degrees[b] and a < b)


def orient_edges(u, v, degrees):
    """Directs every edge from its lower-ranked endpoint to the higher-ranked one.

    Returns (src, dst) with rank(src) < rank(dst) for every pair.
    """
    du = degrees[u]
    dv = degrees[v]
    u_first = (du < dv) | ((du == dv) & (u < v))
    src = np.where(u_first, u, v)
    dst = np.where(u_first, v, u)
    return src, dst


def build_forward_csr(src, dst, n_slots):
    """Packs oriented edges into (indptr, indices) with every row sorted ascending."""
    if len(src) >= NODE_ID_LIMIT:
        raise ValueError(f"CSR build: {len(src)} edges do not fit 32-bit offsets")
    try:
        indptr = np.zeros(n_slots + 1, dtype=np.uint32)
        indices = np.empty(len(src), dtype=np.uint32)
    except MemoryError as exc:
        raise MemoryError(f"CSR build: cannot allocate offsets ({n_slots + 1}) / adjacency ({len(src)}) buffers") from exc

    # Row sizes -> offsets via prefix sum
    out_degree = np.bincount(src, minlength=n_slots)
    indptr[1:] = np.cumsum(out_degree)

    # Fill each row at its precomputed range; a stable sort by source keeps input order within a row
    order = np.argsort(src, kind="stable")
    indices[:] = dst[order]

    # Sort rows in place for the merge intersection
    for i in np.flatnonzero(out_degree > 1):
        indices[indptr[i]:indptr[i + 1]].sort()

    return indptr, indices


def preprocess_edges(packed, max_node_id, num_nodes=None):
    """Canonical packed edges -> ForwardCSR (degrees, orientation, CSR)."""
    start = time.time()
    n_slots = max_node_id + 1
    if num_nodes is not None:
        if num_nodes < n_slots:
            raise ValueError(f"num_nodes={num_nodes} is smaller than max node id + 1 ({n_slots})")
        n_slots = num_nodes

    u, v = unpack_edges(packed)
    degrees = compute_degrees(u, v, n_slots)
    src, dst = orient_edges(u, v, degrees)
    indptr, indices = build_forward_csr(src, dst, n_slots)

    print(f"[TIME] Preprocessing (ranking + A+ CSR, {n_slots} slots, {len(indices)} edges): "
          f"{time.time() - start:.4f} sec", flush=True)
    return ForwardCSR(indptr, indices, degrees, n_slots)
