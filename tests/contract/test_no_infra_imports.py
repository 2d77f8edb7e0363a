import ast
import pathlib

SRC = pathlib.Path(__file__).resolve().parents[2] / "src"


def test_no_infrastructure_imports_in_api():
    api_files = list(SRC.glob("**/api/**/*.py"))
    assert api_files
    for api_py in api_files:
        tree = ast.parse(api_py.read_text(encoding="utf-8"))
        for node in ast.walk(tree):
            if isinstance(node, ast.ImportFrom):
                if node.module and ".infrastructure" in node.module:
                    raise AssertionError(f"Infrastructure import in API file: {api_py} -> from {node.module} import ...")
            if isinstance(node, ast.Import):
                for n in node.names:
                    if "infrastructure" in n.name:
                        raise AssertionError(f"Infrastructure import in API file: {api_py} -> import {n.name}")
