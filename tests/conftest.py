import pytest


@pytest.fixture
def edge_file(tmp_path):
    def _write(text, name="graph.txt"):
        path = tmp_path / name
        path.write_text(text)
        return str(path)
    return _write
