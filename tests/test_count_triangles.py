import itertools

import pytest

from count_triangles import count_triangles, count_triangles_in_file, main, networkx_triangle_count
from graph_helpers import brute_force_triangles, random_edges
from graph_ingest import ingest_edges

SCENARIOS = {
    "single_triangle": ("1 2\n2 3\n1 3\n", 1),
    "complete_k4": ("1 2\n1 3\n1 4\n2 3\n2 4\n3 4\n", 4),
    "self_loop_and_duplicates": ("1 2\n2 3\n1 3\n5 5\n1 2\n1 2\n1 2\n", 1),
    "path": ("1 2\n2 3\n3 4\n", 0),
    "isolated_high_node": ("1 2\n2 3\n1 3\n10 10\n", 1),
}


@pytest.mark.parametrize("name", sorted(SCENARIOS))
@pytest.mark.parametrize("workers", [1, 2])
def test_scenarios_from_file(edge_file, name, workers):
    text, expected = SCENARIOS[name]
    triangles, _ = count_triangles_in_file(edge_file(text), num_workers=workers)
    assert triangles == expected


def test_isolated_nodes_beyond_edges_contribute_nothing():
    triangles, stats = count_triangles([(1, 2), (2, 3), (1, 3)], num_workers=2, num_nodes=11)
    assert triangles == 1
    assert stats.max_node_id == 3


def test_complete_graph_on_30_nodes():
    pairs = [(a, b) for a, b in itertools.combinations(range(30), 2)]
    pairs += [(b, a) for a, b in pairs]
    triangles, stats = count_triangles(pairs, num_workers=2, schedule="weighted")
    assert triangles == 4060
    assert stats.unique_edges == 435


@pytest.mark.parametrize("seed", [21, 22])
def test_matches_networkx_on_random_graphs(seed):
    pairs = random_edges(150, 1500, seed)
    triangles, _ = count_triangles(pairs, num_workers=2, schedule="static")
    assert triangles == networkx_triangle_count(ingest_edges(pairs)[0]) == brute_force_triangles(pairs)


def test_malformed_line_policy(edge_file):
    path = edge_file("1 2\n2 3\noops\n1 3\n")
    with pytest.raises(ValueError, match="line 3"):
        count_triangles_in_file(path, num_workers=1)
    triangles, stats = count_triangles_in_file(path, num_workers=1, on_malformed="skip")
    assert triangles == 1
    assert stats.skipped_lines == 1


def test_main_reports_count(edge_file, capsys):
    path = edge_file("# K4\n1 2\n1 3\n1 4\n2 3\n2 4\n3 4\n")
    assert main([path, "--workers", "2", "--schedule", "dynamic", "--chunk-size", "2", "--verify"]) == 0
    out = capsys.readouterr().out
    assert "Total triangles: 4" in out
    assert "Total triangles (NetworkX): 4" in out


def test_main_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "nope.txt")]) == 1
    assert "File not found" in capsys.readouterr().err


def test_main_rejects_unknown_schedule(edge_file):
    with pytest.raises(SystemExit):
        main([edge_file("1 2\n"), "--schedule", "guided"])
