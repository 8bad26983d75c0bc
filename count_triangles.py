import argparse
import sys
import time

import networkx as nx

from forward_count import parallel_triangle_count
from forward_csr import preprocess_edges
from graph_ingest import MALFORMED_POLICIES, ingest_edge_file, ingest_edges, unpack_edges
from Partitioners import DEFAULT_CHUNK_SIZE, DEFAULT_SCHEDULE, SCHEDULES

# End-to-end exact triangle counting: ingest -> rank/orient -> A+ CSR -> parallel forward count


def count_triangles(pairs, num_workers=None, schedule=DEFAULT_SCHEDULE, chunk_size=DEFAULT_CHUNK_SIZE,
                    num_nodes=None):
    packed, stats = ingest_edges(pairs)
    csr = preprocess_edges(packed, stats.max_node_id, num_nodes)
    return parallel_triangle_count(csr, num_workers, schedule, chunk_size), stats


def count_triangles_in_file(filename, num_workers=None, schedule=DEFAULT_SCHEDULE,
                            chunk_size=DEFAULT_CHUNK_SIZE, num_nodes=None, on_malformed="raise"):
    packed, stats = ingest_edge_file(filename, on_malformed)
    csr = preprocess_edges(packed, stats.max_node_id, num_nodes)
    return parallel_triangle_count(csr, num_workers, schedule, chunk_size), stats


# Reference count for verification; every triangle is seen by its 3 corners
def networkx_triangle_count(packed):
    u, v = unpack_edges(packed)
    G = nx.Graph()
    G.add_edges_from(zip(u.tolist(), v.tolist()))
    return sum(nx.triangles(G).values()) // 3


def create_parser():
    parser = argparse.ArgumentParser(
        prog="count-triangles",
        description="Exact triangle count of an undirected edge list (forward algorithm).",
    )
    parser.add_argument("edge_file", help="Whitespace separated edge list, one 'u v' per line, '#' comments")
    parser.add_argument("--workers", type=int, default=None, help="Worker processes (default: CPU count)")
    parser.add_argument("--schedule", choices=SCHEDULES, default=DEFAULT_SCHEDULE,
                        help=f"Node scheduling across workers (default: {DEFAULT_SCHEDULE})")
    parser.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE,
                        help=f"Node ids per task for the dynamic schedule (default: {DEFAULT_CHUNK_SIZE})")
    parser.add_argument("--num-nodes", type=int, default=None,
                        help="Allocate at least this many node slots (default: max node id + 1)")
    parser.add_argument("--on-malformed", choices=MALFORMED_POLICIES, default="raise",
                        help="Abort on a malformed line or skip it (default: raise)")
    parser.add_argument("--verify", action="store_true", help="Cross-check the count with NetworkX")
    return parser


def main(argv=None):
    args = create_parser().parse_args(argv)

    print(f"\nReading and processing graph from: {args.edge_file}")
    start_time = time.time()
    try:
        packed, stats = ingest_edge_file(args.edge_file, args.on_malformed)
    except FileNotFoundError:
        print(f"File not found: {args.edge_file}", file=sys.stderr)
        return 1
    csr = preprocess_edges(packed, stats.max_node_id, args.num_nodes)
    print(f"Graph processed in: {time.time() - start_time:.4f} seconds")
    print(f"Number of Nodes: {stats.distinct_nodes}")
    print(f"Number of Edges: {stats.raw_records} records, {stats.unique_edges} unique")

    start_time = time.time()
    total_triangles = parallel_triangle_count(csr, args.workers, args.schedule, args.chunk_size)
    print(f"Total triangles: {total_triangles}")
    print(f"Triangle Algorithm time: {time.time() - start_time:.4f} seconds")

    if args.verify:
        print("\n===== NetworkX Verification =====")
        start_time = time.time()
        networkx_count = networkx_triangle_count(packed)
        print(f"Total triangles (NetworkX): {networkx_count}")
        print(f"Triangle Algorithm time (NetworkX): {time.time() - start_time:.4f} seconds")
        if networkx_count != total_triangles:
            print(f"Mismatch: forward count {total_triangles} != NetworkX {networkx_count}", file=sys.stderr)
            return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
