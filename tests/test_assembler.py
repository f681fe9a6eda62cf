"""Tests for graph assembly (pass 3) and the orchestrated pipeline."""

import logging

from symgraph.assembler import assemble
from symgraph.frontend import PythonProgram
from symgraph.models import Link, LinkSet, Node
from symgraph.orchestrator import GraphOrchestrator, analyze_paths
from symgraph.registry import SymbolRegistry


def _registry(*ids):
    return SymbolRegistry({i: Node(id=i, kind="func", name=i) for i in ids})


class TestAssemble:
    """Tests for merging and filtering link sets."""

    def test_dangling_links_are_dropped(self, caplog):
        """Test links to untracked ids are dropped and counted."""
        registry = _registry("a", "b")
        with caplog.at_level(logging.DEBUG, logger="symgraph.assembler"):
            graph = assemble(registry, LinkSet([("a", "b"), ("a", "ghost")]), LinkSet([("ghost", "b")]))
        assert graph.links == [Link("a", "b")]
        assert "Dropped 2 dangling links" in caplog.text

    def test_links_are_deduplicated_and_sorted(self):
        """Test the union keeps one copy of each pair in order."""
        registry = _registry("a", "b", "c")
        graph = assemble(
            registry,
            LinkSet([("b", "a"), ("a", "c")]),
            LinkSet([("a", "c"), ("a", "b")]),
        )
        assert graph.links == [Link("a", "b"), Link("a", "c"), Link("b", "a")]

    def test_nodes_sorted_by_id(self):
        """Test nodes come out sorted and empty links stay a list."""
        graph = assemble(_registry("c", "a", "b"))
        assert [n.id for n in graph.node_list()] == ["a", "b", "c"]
        assert graph.to_dict()["links"] == []

    def test_union_is_order_independent(self):
        """Test argument order does not change the result."""
        registry = _registry("a", "b", "c")
        one = LinkSet([("a", "b")])
        two = LinkSet([("b", "c"), ("c", "a")])
        assert assemble(registry, one, two).to_dict() == assemble(registry, two, one).to_dict()


class TestPipeline:
    """Tests for the full analysis run."""

    def test_sample_graph_has_no_dangling_links(self, sample_graph):
        """Test every link endpoint is a node."""
        for link in sample_graph.links:
            assert link.src in sample_graph.nodes
            assert link.dst in sample_graph.nodes
        assert ("(bank.account.Account).withdraw", "bank.account.Account") in {
            (l.src, l.dst) for l in sample_graph.links
        }

    def test_example_scenario(self, sample_graph):
        """Test the Account/balance/withdraw scenario end to end."""
        nodes = sample_graph.nodes
        assert (nodes["bank.account.Account"].kind, nodes["bank.account.Account"].type) == ("type", "struct")
        assert (nodes["(bank.account.Account).balance"].kind, nodes["(bank.account.Account).balance"].type) == (
            "var", "field",
        )
        assert nodes["(bank.account.Account).withdraw"].type == "method"
        withdraw = {l.dst for l in sample_graph.links if l.src == "(bank.account.Account).withdraw"}
        assert withdraw == {"bank.account.Account", "(bank.account.Account).balance"}

    def test_parallel_and_inline_runs_agree(self, sample_paths):
        """Test the thread pool gives the same graph as an inline run."""
        program = PythonProgram.load(sample_paths)
        inline = GraphOrchestrator(program, workers=1).build()
        pooled = GraphOrchestrator(program, workers=4).build()
        assert inline.to_dict() == pooled.to_dict()

    def test_repeated_runs_are_identical(self, sample_paths):
        """Test output is reproducible."""
        assert analyze_paths(sample_paths).to_dict() == analyze_paths(sample_paths).to_dict()
