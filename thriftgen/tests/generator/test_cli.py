"""Tests for CLI interface."""

import json
import os

from click.testing import CliRunner

from thriftgen.generator.cli import cli

FILE_DIR = os.path.dirname(os.path.realpath(__file__))
PROTO_DIR = os.path.join(FILE_DIR, "..", "proto")


def describe_gen_command():
    def generates_python_code(expect, tmp_path):
        runner = CliRunner()
        output_file = tmp_path / "structs_gen.py"

        result = runner.invoke(
            cli, ["gen", "-i", f"{PROTO_DIR}/structs.thrift", "-o", str(output_file)]
        )
        expect(result.exit_code) == 0
        content = output_file.read_text()
        expect("class Person(Struct):" in content) == True
        expect("@dataclass" in content) == True
        expect("from thriftgen_runtime.binary import TBinaryProtocol" in content) == True

    def writes_into_namespace_directory(expect, tmp_path):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["gen", "-i", f"{PROTO_DIR}/structs.thrift", "-d", str(tmp_path)]
        )
        expect(result.exit_code) == 0
        expect((tmp_path / "structs" / "structs.py").is_file()) == True

    def uses_package_runtime_when_flag_has_no_value(expect, tmp_path):
        runner = CliRunner()
        output_file = tmp_path / "service_gen.py"

        result = runner.invoke(
            cli,
            [
                "gen",
                "-i",
                f"{PROTO_DIR}/service.thrift",
                "-o",
                str(output_file),
                "--runtime-import",
            ],
        )
        expect(result.exit_code) == 0
        content = output_file.read_text()
        expect("from thriftgen.proto.runtime import" in content) == True
        expect("class CalculatorClient(BaseClient):" in content) == True

    def fails_with_syntax_error(expect, tmp_path):
        broken = tmp_path / "broken.thrift"
        broken.write_text("struct A {\n  1: i32\n}\n")

        runner = CliRunner()
        result = runner.invoke(cli, ["gen", "-i", str(broken), "-o", str(tmp_path / "out.py")])
        expect(result.exit_code) == 1
        expect("Syntax error at line" in result.output) == True
        expect((tmp_path / "out.py").exists()) == False

    def fails_with_unknown_type(expect, tmp_path):
        broken = tmp_path / "broken.thrift"
        broken.write_text("struct A { 1: Missing m }\n")

        runner = CliRunner()
        result = runner.invoke(cli, ["gen", "-i", str(broken), "-o", str(tmp_path / "out.py")])
        expect(result.exit_code) == 1
        expect("Unknown identifier Missing" in result.output) == True

    def fails_with_missing_input(expect, tmp_path):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["gen", "-i", "/nonexistent/file.thrift", "-o", str(tmp_path / "out.py")]
        )
        expect(result.exit_code) != 0

    def requires_input_option(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["gen"])
        expect(result.exit_code) != 0
        expect("Missing option" in result.output) == True


def describe_runtime_command():
    def generates_python_runtime(expect, tmp_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["runtime", "-o", str(tmp_path)])
        expect(result.exit_code) == 0

        runtime_dir = tmp_path / "thriftgen_runtime"
        expect(runtime_dir.is_dir()) == True
        expect((runtime_dir / "__init__.py").is_file()) == True
        expect((runtime_dir / "binary.py").is_file()) == True
        expect("Generated Python runtime in" in result.output) == True

    def uses_custom_folder_name(expect, tmp_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["runtime", "-o", str(tmp_path), "--name", "rt"])
        expect(result.exit_code) == 0
        expect((tmp_path / "rt" / "runtime.py").is_file()) == True


def describe_info_command():
    def prints_summary(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-i", f"{PROTO_DIR}/service.thrift"])
        expect(result.exit_code) == 0
        expect("Types" in result.output) == True
        expect("Services" in result.output) == True
        expect("Calculator.lookup" in result.output) == True

    def prints_json(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-i", f"{PROTO_DIR}/structs.thrift", "--json"])
        expect(result.exit_code) == 0
        data = json.loads(result.output)
        expect(data["namespaces"]) == [{"scope": "py", "name": "example.structs"}]
        expect("Person" in [d["name"] for d in data["definitions"]]) == True


def describe_main_group():
    def shows_help(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        expect(result.exit_code) == 0
        expect("gen" in result.output) == True
        expect("runtime" in result.output) == True
        expect("info" in result.output) == True

    def accepts_verbose_flag(expect, tmp_path):
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["-v", "gen", "-i", f"{PROTO_DIR}/structs.thrift", "-o", str(tmp_path / "out.py")],
        )
        expect(result.exit_code) == 0
