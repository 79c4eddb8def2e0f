"""Tests for pipeline contracts.

These tests verify that contracts are enforced at stage boundaries.
They test contract violations directly, without defensive logic downstream.
"""

import pytest

from gbabuild.contracts import (
    ContractViolation,
    assert_declarations_exported,
    assert_intermediates,
    require,
)
from gbabuild.gfx.headers import parse_declarations, synthesize_declaration_header

pytestmark = pytest.mark.unit


class TestRequire:

    def test_passes_silently(self):
        require(True, "never shown")

    def test_raises_with_message(self):
        with pytest.raises(ContractViolation, match="broken invariant"):
            require(False, "broken invariant")

    def test_is_runtime_error(self):
        assert issubclass(ContractViolation, RuntimeError)


class TestIntermediateContract:
    """Test per-file conversion stage contract."""

    def _written(self, tmp_path, *names):
        paths = []
        for name in names:
            path = tmp_path / name
            path.write_bytes(b"x")
            paths.append(path)
        return paths

    def test_passes_when_all_written_in_order(self, tmp_path):
        paths = self._written(tmp_path, "A.png", "B.png")
        assert_intermediates(["a.png", "b.png"], paths, paths)

    def test_fails_on_count_mismatch(self, tmp_path):
        paths = self._written(tmp_path, "A.png")
        with pytest.raises(ContractViolation, match="1 files for 2 sources"):
            assert_intermediates(["a.png", "b.png"], paths, paths)

    def test_fails_on_order_mismatch(self, tmp_path):
        paths = self._written(tmp_path, "A.png", "B.png")
        with pytest.raises(ContractViolation, match="expected"):
            assert_intermediates(["a.png", "b.png"], list(reversed(paths)), paths)

    def test_fails_when_file_missing(self, tmp_path):
        paths = [tmp_path / "A.png"]
        with pytest.raises(ContractViolation, match="was not written"):
            assert_intermediates(["a.png"], paths, paths)


class TestHeaderContract:
    """Test raw-bitmap header synthesis contract."""

    C_SOURCE = (
        "const unsigned short titlePal[256] = {0};\n"
        "const unsigned char titleBitmap[9600] = {0};\n"
    )

    def test_synthesized_header_passes(self):
        decls = parse_declarations(self.C_SOURCE)
        assert_declarations_exported(synthesize_declaration_header("title", decls), decls)

    def test_missing_length_constant(self):
        decls = parse_declarations(self.C_SOURCE)
        header = synthesize_declaration_header("title", decls).replace("#define titlePalLen 256\n", "")
        with pytest.raises(ContractViolation, match="length constant for 'titlePal'"):
            assert_declarations_exported(header, decls)

    def test_missing_extern(self):
        decls = parse_declarations(self.C_SOURCE)
        header = synthesize_declaration_header("title", decls[:1])
        with pytest.raises(ContractViolation, match="titleBitmap"):
            assert_declarations_exported(header, decls)

    def test_no_declarations_is_trivially_satisfied(self):
        assert_declarations_exported(synthesize_declaration_header("empty", []), [])
