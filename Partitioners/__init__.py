from Partitioners.dynamic_partition import partition_dynamic
from Partitioners.static_partition import partition_static
from Partitioners.weight_partition import partition_weighted

# Workgroup width of the original dispatch; only affects scheduling, never the count
DEFAULT_CHUNK_SIZE = 256
DEFAULT_SCHEDULE = "dynamic"
SCHEDULES = ("static", "dynamic", "weighted")


def partition_nodes(schedule, indptr, num_workers, chunk_size=DEFAULT_CHUNK_SIZE):
    """Splits node ids [0, N) into tasks; every id lands in exactly one task."""
    if num_workers < 1:
        raise ValueError(f"num_workers must be >= 1, got {num_workers}")
    if schedule == "static":
        return partition_static(indptr, num_workers)
    elif schedule == "dynamic":
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        return partition_dynamic(indptr, chunk_size)
    elif schedule == "weighted":
        return partition_weighted(indptr, num_workers)
    raise ValueError(f"Schedule must be one of {SCHEDULES}, got {schedule!r}")
