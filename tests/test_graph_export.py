"""Tests for JSON, text listing and HTML export."""

import json
from pathlib import Path

import pytest

from symgraph.errors import GraphFormatError
from symgraph.graph_export import export_html, format_text, load_graph_data, parse_text, render_html, to_json
from symgraph.models import Graph, Link, Node


class TestJson:
    """Tests for the JSON document."""

    def test_json_key_order_and_omission(self, small_graph):
        """Test keys come in wire order and empty optionals are left out."""
        data = json.loads(to_json(small_graph))
        first = data["nodes"][0]
        assert list(first) == ["kind", "type", "pkg", "id", "name", "parent"]
        limit = next(n for n in data["nodes"] if n["id"] == "pkg.LIMIT")
        assert list(limit) == ["kind", "pkg", "id", "name"]
        test_node = next(n for n in data["nodes"] if n["id"] == "pkg.test_run")
        assert test_node["test"] is True
        assert data["links"][0] == {"from": "(pkg.T).f", "to": "pkg.T"}

    def test_compact_and_indented_json(self, small_graph):
        """Test both layouts carry the same document."""
        compact = to_json(small_graph)
        assert "\n" not in compact
        assert '"kind":"var"' in compact
        indented = to_json(small_graph, indent=True)
        assert indented.startswith('{\n  "nodes": [')
        assert json.loads(compact) == json.loads(indented)

    def test_json_is_script_safe(self):
        """Test markup characters are escaped for embedding in a script tag."""
        graph = Graph(nodes={"(type[a.T]).m": Node(id="(type[a.T]).m", kind="func", name="</script>&")})
        text = to_json(graph)
        assert "<" not in text and ">" not in text and "&" not in text
        assert "\\u003c/script\\u003e\\u0026" in text
        assert json.loads(text)["nodes"][0]["name"] == "</script>&"

    def test_empty_links_serialise_as_list(self):
        """Test an empty graph still has a links list."""
        assert json.loads(to_json(Graph()))["links"] == []


class TestTextListing:
    """Tests for the plain-text listing."""

    def test_format_text(self, small_graph):
        """Test one block per node with sorted targets."""
        text = format_text(small_graph)
        assert text.splitlines()[:4] == [
            "(pkg.T).f (var):",
            "- pkg.T",
            "(pkg.T).m (method):",
            "- (pkg.T).f",
        ]
        assert "pkg.LIMIT (const):\n" in text
        assert "pkg.test_run (func):\n- pkg.run\n" in text

    def test_parse_text_round_trip(self, small_graph):
        """Test a listing reads back with parents and subtypes."""
        parsed = parse_text(format_text(small_graph))
        assert parsed.links == small_graph.links
        assert parsed.nodes["(pkg.T).m"].parent == "pkg.T"
        assert parsed.nodes["(pkg.T).m"].name == "T.m"
        assert parsed.nodes["(pkg.T).f"].type == "field"
        assert parsed.nodes["pkg.run"].pkg == "pkg"

    def test_parse_text_drops_dangling_targets(self):
        """Test targets that are not listed nodes are dropped."""
        parsed = parse_text("a.f (func):\n- a.g\n- missing.x\n\na.g (func):\n")
        assert parsed.links == [Link("a.f", "a.g")]
        assert set(parsed.nodes) == {"a.f", "a.g"}

    def test_parse_text_classmethod_parent(self):
        """Test classmethod receivers recover their owning type."""
        parsed = parse_text("a.T (type):\n(type[a.T]).make (method):\n- a.T\n")
        assert parsed.nodes["(type[a.T]).make"].parent == "a.T"

    def test_load_graph_data_detects_format(self, small_graph):
        """Test JSON and text input are both recognised."""
        from_json = load_graph_data(to_json(small_graph))
        from_text = load_graph_data(format_text(small_graph))
        assert from_json.links == from_text.links == small_graph.links
        assert from_json.nodes["pkg.test_run"].test

    @pytest.mark.parametrize("content", ["", "   \n", "{not json", "just words", '{"nodes": "x"}'])
    def test_load_graph_data_rejects_garbage(self, content):
        """Test unreadable graph data raises a format error."""
        with pytest.raises(GraphFormatError):
            load_graph_data(content)


class TestHtml:
    """Tests for the interactive page."""

    def test_render_html(self, small_graph):
        """Test every placeholder is filled."""
        page = render_html(small_graph, d3_src="/d3.js", link_distance=90, charge=-200)
        assert "{{" not in page
        assert '<script src="/d3.js"></script>' in page
        assert 'value="90"' in page and 'value="-200"' in page
        assert to_json(small_graph) in page

    def test_export_html(self, small_graph, temp_dir: Path):
        """Test the standalone page is written to disk."""
        out = temp_dir / "graph.html"
        export_html(small_graph, out)
        content = out.read_text(encoding="utf-8")
        assert content.startswith("<!DOCTYPE html>")
        assert '"id":"pkg.run"' in content
