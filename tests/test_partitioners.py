import numpy as np
import pytest

from Partitioners import partition_nodes


def _indptr(row_lengths):
    return np.concatenate(([0], np.cumsum(row_lengths))).astype(np.uint32)


def _covered(tasks, n_slots):
    ids = [u for task in tasks for u in task if u < n_slots]
    return sorted(ids)


@pytest.mark.parametrize("schedule", ["static", "dynamic", "weighted"])
@pytest.mark.parametrize("n_slots", [1, 5, 257, 1000])
def test_every_node_assigned_exactly_once(schedule, n_slots):
    indptr = _indptr(np.arange(n_slots) % 7)
    tasks = partition_nodes(schedule, indptr, 4, chunk_size=64)
    assert _covered(tasks, n_slots) == list(range(n_slots))


def test_static_blocks_are_contiguous():
    tasks = partition_nodes("static", _indptr([1] * 10), 3)
    assert tasks == [range(0, 3), range(3, 6), range(6, 10)]


def test_static_drops_empty_blocks():
    tasks = partition_nodes("static", _indptr([1, 1]), 4)
    assert [list(t) for t in tasks] == [[0], [1]]


def test_dynamic_pads_last_chunk():
    tasks = partition_nodes("dynamic", _indptr([0] * 300), 2, chunk_size=256)
    assert tasks == [range(0, 256), range(256, 512)]


def test_weighted_balances_forward_rows():
    tasks = partition_nodes("weighted", _indptr([8, 1, 1, 1, 1, 4, 4, 0]), 2)
    lengths = np.array([8, 1, 1, 1, 1, 4, 4, 0])
    loads = sorted(int(lengths[list(task)].sum()) for task in tasks)
    assert loads == [10, 10]
    assert 0 in tasks[0]


def test_partition_rejects_bad_arguments():
    indptr = _indptr([1, 2])
    with pytest.raises(ValueError, match="Schedule"):
        partition_nodes("guided", indptr, 2)
    with pytest.raises(ValueError, match="num_workers"):
        partition_nodes("static", indptr, 0)
    with pytest.raises(ValueError, match="chunk_size"):
        partition_nodes("dynamic", indptr, 2, chunk_size=0)
