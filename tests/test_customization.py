"""Tests for customization unit implementations."""

import os
import stat
import sys
from pathlib import Path

import pytest

from stubsim.modules.simulator import (
    CustomizationError,
    CustomizationLoader,
    PythonScriptCustomization,
    SimulatorContext,
    SubprocessCustomization,
)


def _context(root: Path) -> SimulatorContext:
    return SimulatorContext(root, "orders", "id=1", "text/plain")


def _executable(path: Path, body: str) -> Path:
    path.write_text(f"#!{sys.executable}\n{body}")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


class TestPythonScriptCustomization:
    def test_script_sees_and_mutates_vars(self, temp_dir: Path):
        script = temp_dir / "unit.py"
        script.write_text('vars["request"] = vars["request"] + "&x=2"\nvars["seen"] = True\n')
        ctx = _context(temp_dir)
        PythonScriptCustomization(script).apply(ctx)
        assert ctx.request == "id=1&x=2"
        assert ctx["seen"] is True

    def test_script_can_build_response(self, temp_dir: Path):
        script = temp_dir / "unit.py"
        script.write_text('vars["resolved-response"] = SimulatorResponse(body="hi", status_code=202)\n')
        ctx = _context(temp_dir)
        PythonScriptCustomization(script).apply(ctx)
        assert ctx.resolved_response.body == "hi"
        assert ctx.resolved_response.status_code == 202

    def test_runtime_error_is_wrapped(self, temp_dir: Path):
        script = temp_dir / "unit.py"
        script.write_text('vars["before"] = 1\nraise RuntimeError("boom")\n')
        ctx = _context(temp_dir)
        with pytest.raises(CustomizationError, match="boom"):
            PythonScriptCustomization(script).apply(ctx)
        assert ctx["before"] == 1

    @pytest.mark.parametrize("source", ["import sys\nsys.exit(1)\n", "raise SystemExit\n"])
    def test_exit_is_wrapped(self, temp_dir: Path, source):
        script = temp_dir / "unit.py"
        script.write_text(source)
        with pytest.raises(CustomizationError, match="SystemExit"):
            PythonScriptCustomization(script).apply(_context(temp_dir))

    def test_syntax_error_is_wrapped(self, temp_dir: Path):
        script = temp_dir / "unit.py"
        script.write_text("def broken(:\n")
        with pytest.raises(CustomizationError, match="cannot load"):
            PythonScriptCustomization(script).apply(_context(temp_dir))


@pytest.mark.skipif(os.name == "nt", reason="shebang executables")
class TestSubprocessCustomization:
    def test_json_updates_are_merged(self, temp_dir: Path):
        unit = _executable(
            temp_dir / "unit.sh",
            "import json, sys\n"
            "ctx = json.load(sys.stdin)\n"
            "print(json.dumps({'request': ctx['request'].upper(), 'root': ctx['root-path']}))\n",
        )
        ctx = _context(temp_dir)
        SubprocessCustomization(unit).apply(ctx)
        assert ctx.request == "ID=1"
        assert ctx["root"] == str(temp_dir)

    def test_response_dict_becomes_outcome(self, temp_dir: Path):
        unit = _executable(
            temp_dir / "unit.sh",
            "import json\nprint(json.dumps({'resolved-response': {'body': 'x', 'status_code': 418}}))\n",
        )
        ctx = _context(temp_dir)
        SubprocessCustomization(unit).apply(ctx)
        assert ctx.resolved_response.status_code == 418

    def test_empty_output_changes_nothing(self, temp_dir: Path):
        unit = _executable(temp_dir / "unit.sh", "import sys\nsys.stdin.read()\n")
        ctx = _context(temp_dir)
        SubprocessCustomization(unit).apply(ctx)
        assert list(ctx) == ["root-path", "root-relative-path", "request", "content-type"]

    def test_nonzero_exit_raises(self, temp_dir: Path):
        unit = _executable(temp_dir / "unit.sh", "import sys\nsys.exit(3)\n")
        with pytest.raises(CustomizationError, match="status 3"):
            SubprocessCustomization(unit).apply(_context(temp_dir))

    def test_invalid_json_raises(self, temp_dir: Path):
        unit = _executable(temp_dir / "unit.sh", "print('not json')\n")
        with pytest.raises(CustomizationError, match="invalid JSON"):
            SubprocessCustomization(unit).apply(_context(temp_dir))


class TestCustomizationLoader:
    def test_python_suffix(self, temp_dir: Path):
        unit = CustomizationLoader().load(temp_dir / "GlobalRequest.py")
        assert isinstance(unit, PythonScriptCustomization)

    def test_other_suffix_runs_as_subprocess(self, temp_dir: Path):
        unit = CustomizationLoader(subprocess_timeout=5).load(temp_dir / "GlobalRequest.sh")
        assert isinstance(unit, SubprocessCustomization)
        assert unit.timeout == 5

    def test_register_custom_factory(self, temp_dir: Path):
        loader = CustomizationLoader()
        loader.register(".PYX", PythonScriptCustomization)
        assert isinstance(loader.load(temp_dir / "a.pyx"), PythonScriptCustomization)
