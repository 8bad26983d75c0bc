import itertools

import networkx as nx


def brute_force_triangles(edges):
    adj = {}
    for u, v in edges:
        if u == v:
            continue
        adj.setdefault(u, set()).add(v)
        adj.setdefault(v, set()).add(u)
    return sum(
        1
        for a, b, c in itertools.combinations(sorted(adj), 3)
        if b in adj[a] and c in adj[a] and c in adj[b]
    )


def random_edges(n, m, seed):
    return list(nx.gnm_random_graph(n, m, seed=seed).edges())
