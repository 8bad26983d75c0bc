import operator
import os
import time
from collections import namedtuple

import numpy as np
import psutil

# Canonical edges are packed into one uint64: high half = min endpoint, low half = max endpoint
NODE_ID_LIMIT = 1 << 32
_SHIFT = np.uint64(32)
_LOW_MASK = np.uint64(0xFFFFFFFF)

MALFORMED_POLICIES = ("raise", "skip")

IngestStats = namedtuple("IngestStats", [
    "raw_records",
    "self_loops",
    "duplicates",
    "unique_edges",
    "distinct_nodes",
    "max_node_id",
    "skipped_lines",
])


def memory_usage_mb():
    return psutil.Process(os.getpid()).memory_info().rss / (1024 * 1024)


def parse_edge_line(line, line_no=None):
    """Returns (u, v) for an edge record, None for blank and comment lines.

    Columns after the second one are ignored. Anything that is not two
    non-negative integers raises ValueError.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None

    parts = stripped.split()
    where = f"line {line_no}" if line_no is not None else "record"
    if len(parts) < 2:
        raise ValueError(f"Malformed edge at {where}: expected two node ids, got {stripped!r}")
    try:
        u, v = int(parts[0]), int(parts[1])
    except ValueError:
        raise ValueError(f"Malformed edge at {where}: non-integer node id in {stripped!r}") from None
    if u < 0 or v < 0:
        raise ValueError(f"Malformed edge at {where}: negative node id in {stripped!r}")
    return u, v


def _check_node_id(node_id, where):
    if node_id >= NODE_ID_LIMIT:
        raise ValueError(f"Node id {node_id} at {where} does not fit in 32 bits")


def pack_edges(u, v):
    u = np.asarray(u, dtype=np.uint64)
    v = np.asarray(v, dtype=np.uint64)
    low = np.minimum(u, v)
    high = np.maximum(u, v)
    return (low << _SHIFT) | high


def unpack_edges(packed):
    packed = np.asarray(packed, dtype=np.uint64)
    return (packed >> _SHIFT).astype(np.int64), (packed & _LOW_MASK).astype(np.int64)


def canonicalize_edges(packed):
    """Sorts packed keys in place and drops adjacent duplicates."""
    packed.sort()
    if len(packed) == 0:
        return packed
    keep = np.empty(len(packed), dtype=bool)
    keep[0] = True
    np.not_equal(packed[1:], packed[:-1], out=keep[1:])
    return packed[keep]


# Rejects non-integer, negative and over-wide ids before the int64 cast, which would truncate or overflow
def _checked_pairs(pairs):
    if isinstance(pairs, np.ndarray):
        if pairs.size and not np.issubdtype(pairs.dtype, np.integer):
            raise ValueError(f"Malformed edge records: non-integer dtype {pairs.dtype}")
        if pairs.size and int(pairs.max()) >= NODE_ID_LIMIT:
            _check_node_id(int(pairs.max()), "in-memory edge array")
        return pairs

    checked = []
    for i, record in enumerate(pairs):
        try:
            u, v = record
            u, v = operator.index(u), operator.index(v)
        except (TypeError, ValueError):
            raise ValueError(f"Malformed edge at record {i}: expected two integer node ids, got {record!r}") from None
        if u < 0 or v < 0:
            raise ValueError(f"Malformed edge at record {i}: negative node id in {record!r}")
        _check_node_id(max(u, v), f"record {i}")
        checked.append((u, v))
    return checked


def ingest_edges(pairs):
    """Canonical edge set from in-memory (u, v) pairs or a (k, 2) array.

    Returns (unique_packed_edges, stats).
    """
    arr = np.asarray(_checked_pairs(pairs), dtype=np.int64)
    if arr.size == 0:
        arr = arr.reshape(0, 2)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"Edge records must have shape (k, 2), got {arr.shape}")
    if (arr < 0).any():
        bad = int(np.argmax((arr < 0).any(axis=1)))
        raise ValueError(f"Malformed edge at record {bad}: negative node id in {arr[bad].tolist()}")

    max_node_id = int(arr.max()) if len(arr) else 0
    _check_node_id(max_node_id, "in-memory edge list")

    loops = arr[:, 0] == arr[:, 1]
    kept = arr[~loops]
    packed = canonicalize_edges(pack_edges(kept[:, 0], kept[:, 1]))

    stats = IngestStats(
        raw_records=len(arr),
        self_loops=int(loops.sum()),
        duplicates=len(kept) - len(packed),
        unique_edges=len(packed),
        distinct_nodes=len(np.unique(arr)),
        max_node_id=max_node_id,
        skipped_lines=0,
    )
    return packed, stats


def _iter_records(filename, on_malformed):
    # Yields (line_no, u, v); malformed lines are raised or dropped according to policy
    with open(filename, "r") as file:
        for line_no, line in enumerate(file, start=1):
            try:
                record = parse_edge_line(line, line_no)
            except ValueError as exc:
                if on_malformed == "raise":
                    raise ValueError(f"{filename}: {exc}") from None
                yield line_no, None, None
                continue
            if record is not None:
                yield line_no, record[0], record[1]


def ingest_edge_file(filename, on_malformed="raise"):
    """Two-pass ingestion of a whitespace separated edge list.

    Pass 1 only tallies, pass 2 materializes packed keys into an array sized
    from the tally, so peak memory is bounded by the non-self-loop records.
    Returns (unique_packed_edges, stats).
    """
    if on_malformed not in MALFORMED_POLICIES:
        raise ValueError(f"on_malformed must be one of {MALFORMED_POLICIES}, got {on_malformed!r}")
    if not os.path.isfile(filename):
        raise FileNotFoundError(f"Edge list not found: {filename}")

    # Pass 1: count records and find bounds
    pass1_start = time.time()
    raw_records = 0
    valid_records = 0
    skipped = 0
    max_node_id = 0
    node_ids = set()
    for line_no, u, v in _iter_records(filename, on_malformed):
        if u is None:
            skipped += 1
            continue
        raw_records += 1
        node_ids.add(u)
        node_ids.add(v)
        if u != v:
            valid_records += 1
        if max(u, v) > max_node_id:
            max_node_id = max(u, v)
            _check_node_id(max_node_id, f"{filename} line {line_no}")
    print(f"[TIME] Pass 1 (tally {raw_records} records): {time.time() - pass1_start:.4f} sec", flush=True)

    # Pass 2: fill packed keys, skipping self-loops
    pass2_start = time.time()
    try:
        packed = np.empty(valid_records, dtype=np.uint64)
    except MemoryError as exc:
        raise MemoryError(f"Ingestion: cannot allocate packed edge buffer for {valid_records} edges") from exc
    idx = 0
    for line_no, u, v in _iter_records(filename, on_malformed):
        if u is None or u == v:
            continue
        if idx >= valid_records:
            raise RuntimeError(f"{filename} changed between ingestion passes (more than {valid_records} edges by line {line_no})")
        if u > v:
            u, v = v, u
        packed[idx] = (u << 32) | v
        idx += 1
    if idx != valid_records:
        raise RuntimeError(f"{filename} changed between ingestion passes ({valid_records} vs {idx} edges)")
    print(f"[TIME] Pass 2 (pack {valid_records} edges): {time.time() - pass2_start:.4f} sec", flush=True)

    dedup_start = time.time()
    unique = canonicalize_edges(packed)
    print(f"[TIME] Sort + dedup: {time.time() - dedup_start:.4f} sec", flush=True)

    stats = IngestStats(
        raw_records=raw_records,
        self_loops=raw_records - valid_records,
        duplicates=valid_records - len(unique),
        unique_edges=len(unique),
        distinct_nodes=len(node_ids),
        max_node_id=max_node_id,
        skipped_lines=skipped,
    )
    print(f"Ingested {stats.unique_edges} unique edges over {stats.distinct_nodes} nodes "
          f"(self-loops: {stats.self_loops}, duplicates: {stats.duplicates}, skipped: {skipped}). "
          f"Memory used: {memory_usage_mb():.2f} MB", flush=True)
    return unique, stats
