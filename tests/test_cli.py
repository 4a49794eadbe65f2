"""Integration tests for CLI commands."""

import json
from pathlib import Path

from typer.testing import CliRunner

from tsgen_cli import __version__, config_manager
from tsgen_cli.cli import app
from tsgen_cli.diff_engine import DiffEngine

runner = CliRunner()


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def _ops(temp_dir: Path, operations) -> Path:
    return _write(temp_dir / "ops.json", json.dumps(operations))


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"tsgen v{__version__}" in result.stdout


class TestParseCommand:
    """Tests for 'tsgen parse'."""

    def test_parse_json(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "export function greet(): void {}\n")
        result = runner.invoke(app, ["parse", str(source), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["declarations"][0]["name"] == "greet"
        assert data["metrics"]["function_count"] == 1

    def test_parse_table(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "import { z } from 'zod';\nexport class Box {}\n")
        result = runner.invoke(app, ["parse", str(source)])

        assert result.exit_code == 0
        assert "import z <- zod" in result.stdout
        assert "Metrics: 2 LOC" in result.stdout

    def test_parse_missing_file(self):
        result = runner.invoke(app, ["parse", "/nonexistent/file.ts"])
        assert result.exit_code != 0


class TestAnalyzeCommand:
    """Tests for 'tsgen analyze'."""

    def test_analyze_file(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "export function noDoc(): void {}\n")
        result = runner.invoke(app, ["analyze", str(source)])

        assert result.exit_code == 0
        assert "Issues: 1 info" in result.stdout

    def test_analyze_directory_skips_dependencies(self, sample_project_path: Path):
        result = runner.invoke(app, ["analyze", str(sample_project_path), "--json"])

        assert result.exit_code == 0
        reports = json.loads(result.stdout)
        paths = [Path(r["file_path"]).relative_to(sample_project_path).as_posix() for r in reports]
        assert paths == ["src/index.ts", "src/models/user.ts"]

        user_issues = reports[1]["issues"]
        assert any(i["type"] == "naming" and i["node"] == "userStore" for i in user_issues)

    def test_analyze_directory_summary(self, sample_project_path: Path):
        result = runner.invoke(app, ["analyze", str(sample_project_path)])

        assert result.exit_code == 0
        assert "2 files" in result.stdout

    def test_analyze_uses_configured_thresholds(self, temp_dir: Path):
        config_manager.save_analysis_config(large_file_lines=1)
        source = _write(temp_dir / "a.ts", "let a = 1;\nlet b = 2;\n")
        result = runner.invoke(app, ["analyze", str(source), "--json"])

        reports = json.loads(result.stdout)
        assert [i["type"] for i in reports[0]["issues"]] == ["large-file"]

    def test_analyze_empty_directory(self, temp_dir: Path):
        empty = temp_dir / "empty"
        empty.mkdir()
        result = runner.invoke(app, ["analyze", str(empty)])
        assert result.exit_code == 1


class TestTransformCommand:
    """Tests for 'tsgen transform'."""

    def test_prints_transformed_source(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "class Foo {}\n")
        ops = _ops(temp_dir, [
            {"type": "add-property", "targetClass": "Foo", "propertyName": "id", "propertyType": "string"},
        ])
        result = runner.invoke(app, ["transform", str(source), str(ops)])

        assert result.exit_code == 0
        assert "class Foo {\n  id: string;\n}\n" in result.stdout
        # the input file is left alone
        assert source.read_text() == "class Foo {}\n"

    def test_failed_operation_exits_one(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "class Foo {}\n")
        ops = _ops(temp_dir, [
            {"type": "add-import", "moduleSpecifier": "zod", "namedImports": ["z"]},
            {"type": "add-property", "targetClass": "Bar", "propertyName": "p", "propertyType": "string"},
        ])
        result = runner.invoke(app, ["transform", str(source), str(ops)])

        assert result.exit_code == 1
        assert "Class 'Bar' not found" in result.output
        assert "import { z } from 'zod';" in result.output

    def test_malformed_operation_exits_two(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "const x = 1;\n")
        ops = _ops(temp_dir, [{"type": "add-import"}])
        result = runner.invoke(app, ["transform", str(source), str(ops)])
        assert result.exit_code == 2

    def test_invalid_json_exits_two(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "const x = 1;\n")
        ops = _write(temp_dir / "ops.json", "{not json")
        result = runner.invoke(app, ["transform", str(source), str(ops)])
        assert result.exit_code == 2

    def test_operations_key_is_accepted(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "const x = 1;\n")
        ops = _ops(temp_dir, {"operations": [{"type": "add-export", "name": "x"}]})
        result = runner.invoke(app, ["transform", str(source), str(ops)])

        assert result.exit_code == 0
        assert "export { x };" in result.stdout

    def test_output_respects_force(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "const x = 1;\n")
        ops = _ops(temp_dir, [{"type": "add-export", "name": "x"}])
        target = temp_dir / "out" / "b.ts"

        first = runner.invoke(app, ["transform", str(source), str(ops), "--output", str(target)])
        assert first.exit_code == 0
        assert target.read_text() == "const x = 1;\nexport { x };\n"

        _write(target, "keep me\n")
        refused = runner.invoke(app, ["transform", str(source), str(ops), "-o", str(target)])
        assert refused.exit_code == 1
        assert target.read_text() == "keep me\n"

        forced = runner.invoke(app, ["transform", str(source), str(ops), "-o", str(target), "--force"])
        assert forced.exit_code == 0
        assert target.read_text() == "const x = 1;\nexport { x };\n"

    def test_diff(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "const x = 1;\n")
        ops = _ops(temp_dir, [{"type": "add-export", "name": "x"}])
        result = runner.invoke(app, ["transform", str(source), str(ops), "--diff"])

        assert result.exit_code == 0
        assert "--- a/a.ts" in result.stdout
        assert "+export { x };" in result.stdout

    def test_in_place_keeps_backup(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "const x = 1;\n")
        ops = _ops(temp_dir, [{"type": "add-export", "name": "x"}])
        result = runner.invoke(app, ["transform", str(source), str(ops), "--in-place"])

        assert result.exit_code == 0
        assert source.read_text() == "const x = 1;\nexport { x };\n"

        backups = DiffEngine().list_backups()
        assert len(backups) == 1
        assert backups[0]["description"] == "transform a.ts"


class TestFormatCommand:
    """Tests for 'tsgen format'."""

    def test_prints_formatted(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "const   x=1;")
        result = runner.invoke(app, ["format", str(source)])

        assert result.exit_code == 0
        assert result.stdout == "const x = 1;\n"

    def test_check(self, temp_dir: Path):
        clean = _write(temp_dir / "clean.ts", "const x = 1;\n")
        messy = _write(temp_dir / "messy.ts", "const   x=1;")

        assert runner.invoke(app, ["format", str(clean), "--check"]).exit_code == 0
        assert runner.invoke(app, ["format", str(messy), "--check"]).exit_code == 1

    def test_write(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "const   x=1;")
        result = runner.invoke(app, ["format", str(source), "--write"])

        assert result.exit_code == 0
        assert "Formatted" in result.stdout
        assert source.read_text() == "const x = 1;\n"

        again = runner.invoke(app, ["format", str(source), "-w"])
        assert "unchanged" in again.stdout


class TestLicenseAndCompare:
    """Tests for 'tsgen license' and 'tsgen compare'."""

    def test_license_header_option(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "const x = 1;\n")
        result = runner.invoke(app, ["license", str(source), "--header", "MIT"])

        assert result.exit_code == 0
        assert result.stdout == "/**\n * MIT\n */\n\nconst x = 1;\n"

    def test_license_from_config(self, temp_dir: Path):
        runner.invoke(app, ["config", "set-license", "Copyright Acme"])
        source = _write(temp_dir / "a.ts", "const x = 1;\n")
        result = runner.invoke(app, ["license", str(source), "--write"])

        assert result.exit_code == 0
        assert source.read_text().startswith("/**\n * Copyright Acme\n */\n")

    def test_license_without_header_fails(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "const x = 1;\n")
        result = runner.invoke(app, ["license", str(source)])
        assert result.exit_code == 1

    def test_compare(self, temp_dir: Path):
        old = _write(temp_dir / "old.ts", "function a() {}\nclass K {}\n")
        new = _write(temp_dir / "new.ts", "function a() {}\nfunction b() {}\n")
        result = runner.invoke(app, ["compare", str(old), str(new)])

        assert result.exit_code == 0
        assert "+ function:b" in result.stdout
        assert "- class:K" in result.stdout

    def test_compare_json(self, temp_dir: Path):
        old = _write(temp_dir / "old.ts", "function a() {}\n")
        result = runner.invoke(app, ["compare", str(old), str(old), "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"added": [], "removed": [], "modified": []}


class TestConfigAndBackupGroups:
    """Tests for the 'config' and 'backup' command groups."""

    def test_config_show_defaults(self):
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "large_file_lines = 500" in result.stdout

    def test_set_analysis(self, tsgen_home: Path):
        result = runner.invoke(app, ["config", "set-analysis", "--complexity", "5"])

        assert result.exit_code == 0
        assert (tsgen_home / "config.toml").exists()
        shown = runner.invoke(app, ["config", "show"])
        assert "complexity_threshold = 5" in shown.stdout

    def test_set_analysis_needs_a_value(self):
        result = runner.invoke(app, ["config", "set-analysis"])
        assert result.exit_code == 1

    def test_backup_list_empty(self):
        result = runner.invoke(app, ["backup", "list"])

        assert result.exit_code == 0
        assert "No backups" in result.stdout

    def test_backup_restore(self, temp_dir: Path):
        source = _write(temp_dir / "a.ts", "const   x=1;")
        runner.invoke(app, ["format", str(source), "--write"])
        backup_id = DiffEngine().list_backups()[0]["backup_id"]

        result = runner.invoke(app, ["backup", "restore", backup_id])

        assert result.exit_code == 0
        assert source.read_text() == "const   x=1;"

    def test_backup_restore_unknown(self):
        result = runner.invoke(app, ["backup", "restore", "nope"])
        assert result.exit_code == 1


class TestGenerateCommand:
    """Tests for 'tsgen generate' and 'tsgen generators'."""

    def test_generators_lists_names(self):
        result = runner.invoke(app, ["generators"])

        assert result.exit_code == 0
        for name in ("component", "api-route", "model", "test"):
            assert name in result.stdout

    def test_generate_model(self, temp_dir: Path):
        out = temp_dir / "models"
        result = runner.invoke(app, ["generate", "model", "Product", "-o", str(out), "--fields", "name:string,price:number"])

        assert result.exit_code == 0
        target = out / "product.ts"
        assert f"Created {target}" in result.stdout
        assert "  price: z.number(),\n" in target.read_text(encoding="utf-8")

    def test_existing_file_needs_force(self, temp_dir: Path):
        args = ["generate", "test", "helpers", "-o", str(temp_dir)]
        assert runner.invoke(app, args).exit_code == 0

        skipped = runner.invoke(app, args)
        assert skipped.exit_code == 1
        assert "Skipped" in skipped.output

        assert runner.invoke(app, args + ["--force"]).exit_code == 0

    def test_dry_run_writes_nothing(self, temp_dir: Path):
        result = runner.invoke(app, ["generate", "api-route", "users", "-o", str(temp_dir), "--methods", "GET,DELETE", "--dry-run"])

        assert result.exit_code == 0
        assert f"// {temp_dir / 'users' / 'route.ts'}" in result.stdout
        assert "export async function DELETE(" in result.stdout
        assert not (temp_dir / "users").exists()

    def test_unknown_generator_exits_one(self):
        result = runner.invoke(app, ["generate", "widget", "Thing"])

        assert result.exit_code == 1
        assert "Generator 'widget' not found" in result.output

    def test_invalid_option_exits_one(self, temp_dir: Path):
        result = runner.invoke(app, ["generate", "api-route", "users", "-o", str(temp_dir), "--methods", "FETCH"])

        assert result.exit_code == 1
        assert "Unsupported HTTP method 'FETCH'" in result.output
