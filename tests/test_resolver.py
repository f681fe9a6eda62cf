"""Tests for reference and structural edges (pass 2)."""

import ast

from symgraph.frontend import PythonProgram
from symgraph.registry import SymbolRegistry
from symgraph.resolver import enclosing_node, resolve_unit
from symgraph.structure import derive_structural_links, derive_type_links


def _build(program):
    registry = SymbolRegistry.build(program.symbols())
    links = {}
    for unit in program.units:
        links[unit.module] = set(resolve_unit(unit, registry))
    return registry, links


class TestReferenceLinks:
    """Tests for links found by walking syntax."""

    def test_method_uses_field(self, sample_program):
        """Test methods link to the fields, consts and types they use."""
        _, links = _build(sample_program)
        account = links["bank.account"]
        assert ("(bank.account.Account).withdraw", "(bank.account.Account).balance") in account
        assert ("(bank.account.Account).deposit", "bank.account.MAX_BALANCE") in account
        assert ("(bank.account.Account).deposit", "bank.account.Transaction") in account
        assert ("(bank.account.Transaction).__init__", "(bank.account.Transaction).amount") in account

    def test_cross_module_references(self, sample_program):
        """Test references through imports link to the declaring module."""
        _, links = _build(sample_program)
        ledger = links["bank.ledger"]
        assert ("bank.ledger.Hook", "bank.account.Account") in ledger
        assert ("bank.ledger.AccountMap", "bank.account.AccountId") in ledger
        assert ("(bank.ledger.Ledger).transfer", "(bank.account.Account).withdraw") in ledger
        assert ("(bank.ledger.Ledger).transfer", "(bank.account.Account).deposit") in ledger
        assert ("(bank.ledger.Ledger).open", "bank.account.AccountId") in ledger
        assert ("bank.ledger.on_open", "bank.ledger.Hook") in ledger

    def test_interface_receiver_gets_plain_member_link(self, sample_program):
        """Test calls through a Protocol link to the interface method only."""
        _, links = _build(sample_program)
        ledger = links["bank.ledger"]
        assert ("(bank.ledger.Ledger).lookup", "(bank.ledger.Store).load") in ledger
        assert ("(bank.ledger.Ledger).lookup", "(bank.ledger.Ledger).store") in ledger

    def test_test_module_links(self, sample_program):
        """Test the exact link set of the test module."""
        _, links = _build(sample_program)
        assert links["bank.test_ledger"] == {
            ("bank.test_ledger.test_open_starts_empty", "bank.ledger.Ledger"),
            ("bank.test_ledger.test_open_starts_empty", "(bank.ledger.Ledger).open"),
            ("bank.test_ledger.test_open_starts_empty", "(bank.account.Account).balance"),
        }

    def test_package_init_has_no_links(self, sample_program):
        """Test re-exporting imports create no links."""
        _, links = _build(sample_program)
        assert links["bank"] == set()

    def test_enclosing_node(self, sample_program):
        """Test the innermost registered declaration is found."""
        registry = SymbolRegistry.build(sample_program.symbols())
        unit = next(u for u in sample_program.units if u.module == "bank.account")
        attr = next(n for n in ast.walk(unit.tree) if isinstance(n, ast.Attribute) and n.attr == "append")
        assert enclosing_node(unit, attr, registry).id == "(bank.account.Account).deposit"
        assert enclosing_node(unit, unit.tree, registry) is None

    def test_member_link_for_struct_receiver(self, write_module):
        """Test member access through a struct type adds the static member link."""
        path = write_module(
            "shapes.py",
            "class Point:\n"
            "    x: int = 0\n"
            "\n"
            "    def norm(self) -> int:\n"
            "        return abs(self.x)\n"
            "\n"
            "class Base:\n"
            "    def hello(self):\n"
            "        pass\n"
            "\n"
            "class Child(Base):\n"
            "    pass\n"
            "\n"
            "def use(points: list[Point], child: Child) -> int:\n"
            "    child.hello()\n"
            "    return points[0].norm()\n",
        )
        program = PythonProgram.load([str(path)])
        registry, links = _build(program)
        used = {dst for src, dst in links["shapes"] if src == "shapes.use"}
        assert "(shapes.Point).norm" in used
        assert "shapes.Point" in used
        assert "(shapes.Base).hello" in used
        # the member link through the subclass points at a node that does not exist
        assert "(shapes.Child).hello" in used
        assert "(shapes.Child).hello" not in registry


class TestStructuralLinks:
    """Tests for links implied by type structure."""

    def test_structural_links(self, sample_program):
        """Test ownership, field-type and embedding links."""
        registry = SymbolRegistry.build(sample_program.symbols())
        links = set(derive_structural_links(registry))
        assert ("(bank.account.Account).withdraw", "bank.account.Account") in links
        assert ("(type[bank.account.Account]).empty", "bank.account.Account") in links
        assert ("(bank.account.Account).balance", "bank.account.Account") in links
        assert ("(bank.account.Account).history", "bank.account.Transaction") in links
        assert ("(bank.ledger.Ledger).store", "bank.ledger.Store") in links
        assert ("(bank.ledger.Store).load", "bank.ledger.Store") in links
        assert ("bank.ledger.AuditedStore", "bank.ledger.Store") in links
        # untracked embeds produce nothing
        assert not any(dst == "Protocol" for _, dst in links)

    def test_type_links_for_non_types(self, sample_program):
        """Test non-type nodes derive nothing."""
        registry = SymbolRegistry.build(sample_program.symbols())
        assert len(derive_type_links(registry["bank.account.MAX_BALANCE"], registry)) == 0
